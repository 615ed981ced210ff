"""
Controller profiles
Map the axis and button ids reported by a physical joystick to named controls
"""

import json
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Dict

from groundstation.errors import ProfileError
from groundstation.events import Axis, Button

logger = logging.getLogger(__name__)

PROFILE_PACKAGE = "groundstation.controllers"


@dataclass(frozen=True)
class ControllerProfile:
    name: str
    axes: Dict[int, Axis] = field(default_factory=dict)
    buttons: Dict[int, Button] = field(default_factory=dict)

    def axis_for(self, device_axis):
        return self.axes.get(device_axis)

    def button_for(self, device_button):
        return self.buttons.get(device_button)


def _parse_controls(section, enum_type, kind):
    if not isinstance(section, dict):
        raise ProfileError(f"'{kind}' must be an object mapping names to ids")

    mapping = {}
    for name, device_id in section.items():
        try:
            control = enum_type(name)
        except ValueError:
            valid = ", ".join(member.value for member in enum_type)
            raise ProfileError(f"unknown {kind[:-1]} '{name}' (expected one of {valid})") from None
        if not isinstance(device_id, int) or isinstance(device_id, bool) or device_id < 0:
            raise ProfileError(f"{kind[:-1]} '{name}' needs a non-negative integer id")
        if device_id in mapping:
            raise ProfileError(f"id {device_id} is mapped twice in '{kind}'")
        mapping[device_id] = control
    return mapping


def parse_profile(data):
    """Build a profile from already decoded JSON"""
    if not isinstance(data, dict):
        raise ProfileError("profile must be a JSON object")

    axes = _parse_controls(data.get("axes", {}), Axis, "axes")
    missing = set(Axis) - set(axes.values())
    if missing:
        names = ", ".join(sorted(axis.value for axis in missing))
        raise ProfileError(f"profile does not map axes: {names}")

    buttons = _parse_controls(data.get("buttons", {}), Button, "buttons")
    return ControllerProfile(name=str(data.get("name", "unnamed")), axes=axes, buttons=buttons)


def bundled_profiles():
    """Names of the profiles shipped with the package"""
    root = resources.files(PROFILE_PACKAGE)
    return sorted(entry.name[:-5] for entry in root.iterdir() if entry.name.endswith(".json"))


def load_controller_profile(name_or_path):
    """Load a bundled profile by name, or a profile file by path"""
    path = Path(name_or_path)
    try:
        if path.exists():
            text = path.read_text(encoding="utf-8")
            source = str(path)
        else:
            # "logitech.json" also names the bundled "logitech" profile
            name = path.stem if path.suffix == ".json" else name_or_path
            entry = resources.files(PROFILE_PACKAGE).joinpath(f"{name}.json")
            if not entry.is_file():
                raise ProfileError(
                    f"no controller profile '{name_or_path}' "
                    f"(bundled: {', '.join(bundled_profiles())})"
                )
            text = entry.read_text(encoding="utf-8")
            source = f"bundled:{name}"
    except OSError as e:
        raise ProfileError(f"could not read controller profile {name_or_path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProfileError(f"controller profile {source} is not valid JSON: {e}") from e

    profile = parse_profile(data)
    logger.info(f"Controller profile loaded: {profile.name} ({source})")
    return profile
