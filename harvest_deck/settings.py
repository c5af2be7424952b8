"""Validation of button settings payloads received from the host."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import voluptuous as vol

from .const import (
    CONF_ACCESS_TOKEN,
    CONF_ACCOUNT_ID,
    CONF_CLIENT_ID,
    CONF_LABEL,
    CONF_PROJECT_ID,
    CONF_TASK_ID,
    CONF_TYPE,
)
from .models import (
    ButtonConfig,
    ButtonKind,
    ClientButton,
    DailyButton,
    IncompleteButton,
    Position,
    ProjectButton,
    TimerButton,
    WeeklyButton,
)

_LOGGER = logging.getLogger(__name__)

_identifier = vol.All(vol.Coerce(str), vol.Strip, vol.Length(min=1))

CREDENTIALS_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_ACCOUNT_ID): _identifier,
        vol.Required(CONF_ACCESS_TOKEN): _identifier,
    },
    extra=vol.ALLOW_EXTRA,
)

TARGET_SCHEMAS: dict[ButtonKind, vol.Schema] = {
    ButtonKind.TIMER: CREDENTIALS_SCHEMA.extend(
        {
            vol.Required(CONF_PROJECT_ID): _identifier,
            vol.Required(CONF_TASK_ID): _identifier,
        }
    ),
    ButtonKind.DAILY: CREDENTIALS_SCHEMA,
    ButtonKind.WEEKLY: CREDENTIALS_SCHEMA,
    ButtonKind.PROJECT: CREDENTIALS_SCHEMA.extend(
        {vol.Required(CONF_PROJECT_ID): _identifier}
    ),
    ButtonKind.CLIENT: CREDENTIALS_SCHEMA.extend(
        {vol.Required(CONF_CLIENT_ID): _identifier}
    ),
}

COORDINATES_SCHEMA = vol.Schema(
    {
        vol.Required("row"): vol.Coerce(int),
        vol.Required("column"): vol.Coerce(int),
    },
    extra=vol.ALLOW_EXTRA,
)

UNKNOWN_POSITION = Position(row=-1, column=-1)


def parse_position(coordinates: Mapping[str, Any] | None) -> Position:
    """Read the key coordinates of an appear or settings event."""
    try:
        data = COORDINATES_SCHEMA(dict(coordinates or {}))
    except vol.Invalid as err:
        _LOGGER.debug("Ignoring invalid coordinates %s: %s", coordinates, err)
        return UNKNOWN_POSITION
    return Position(row=data["row"], column=data["column"])


def parse_button_settings(
    settings: Mapping[str, Any] | None,
    position: Position,
    global_settings: Mapping[str, Any] | None = None,
) -> ButtonConfig:
    """Turn a raw settings payload into a button configuration.

    Credentials missing from the button fall back to the ones saved in the
    global settings, as the property inspector does when it first opens.
    Payloads that cannot be polled become ``IncompleteButton`` rather than
    raising.
    """
    data = dict(settings or {})
    label = str(data.get(CONF_LABEL) or "")

    for key in (CONF_ACCOUNT_ID, CONF_ACCESS_TOKEN):
        if not data.get(key) and global_settings and global_settings.get(key):
            data[key] = global_settings[key]

    try:
        kind = ButtonKind(data.get(CONF_TYPE))
    except ValueError:
        return IncompleteButton(
            declared_kind=None,
            label=label,
            position=position,
            reason=f"unknown button type {data.get(CONF_TYPE)!r}",
        )

    try:
        valid = TARGET_SCHEMAS[kind](data)
    except vol.Invalid as err:
        return IncompleteButton(
            declared_kind=kind, label=label, position=position, reason=str(err)
        )

    common = {
        "account_id": valid[CONF_ACCOUNT_ID],
        "access_token": valid[CONF_ACCESS_TOKEN],
        "label": label,
        "position": position,
    }
    if kind is ButtonKind.TIMER:
        return TimerButton(
            **common,
            project_id=valid[CONF_PROJECT_ID],
            task_id=valid[CONF_TASK_ID],
        )
    if kind is ButtonKind.PROJECT:
        return ProjectButton(**common, project_id=valid[CONF_PROJECT_ID])
    if kind is ButtonKind.CLIENT:
        return ClientButton(**common, client_id=valid[CONF_CLIENT_ID])
    if kind is ButtonKind.DAILY:
        return DailyButton(**common)
    return WeeklyButton(**common)
