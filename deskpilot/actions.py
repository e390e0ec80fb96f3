"""Typed desktop actions.

Every action handled by the autonomous loop, the task executor and the learned
memory is one of the frozen dataclasses below. Each carries a class-level
``kind`` tag and explicitly typed fields, so values never need delimiter
escaping once they are inside the program.

Advisors still talk in loose ``(kind, value)`` text pairs. ``parse_action``
is the adapter at that boundary, and ``action_to_dict`` / ``action_from_dict``
give the JSON form used for persisted task patterns.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from deskpilot.errors import ActionParseError


def _parse_point(value: str) -> tuple[int, int]:
    parts = [p.strip() for p in re.split(r"[,\s]+", value.strip()) if p.strip()]
    if len(parts) != 2:
        raise ActionParseError(f"Expected 'x,y' coordinates, got {value!r}")
    try:
        return int(float(parts[0])), int(float(parts[1]))
    except ValueError:
        raise ActionParseError(f"Expected numeric coordinates, got {value!r}") from None


def _split_pair(value: str) -> tuple[str, str]:
    """Split ``"first|rest"`` on the first pipe only."""
    first, sep, rest = value.partition("|")
    if not sep:
        return value.strip(), ""
    return first.strip(), rest


@dataclass(frozen=True)
class Click:
    kind: ClassVar[str] = "click"
    button: str = "left"

    @property
    def value(self) -> str:
        return self.button

    @classmethod
    def from_value(cls, value: str) -> "Click":
        button = value.strip().lower() or "left"
        if button not in ("left", "right", "middle"):
            button = "left"
        return cls(button=button)


@dataclass(frozen=True)
class ClickAt:
    kind: ClassVar[str] = "click_at"
    x: int
    y: int

    @property
    def value(self) -> str:
        return f"{self.x},{self.y}"

    @classmethod
    def from_value(cls, value: str) -> "ClickAt":
        x, y = _parse_point(value)
        return cls(x=x, y=y)


@dataclass(frozen=True)
class MoveTo:
    kind: ClassVar[str] = "move_to"
    x: int
    y: int

    @property
    def value(self) -> str:
        return f"{self.x},{self.y}"

    @classmethod
    def from_value(cls, value: str) -> "MoveTo":
        x, y = _parse_point(value)
        return cls(x=x, y=y)


@dataclass(frozen=True)
class TypeText:
    kind: ClassVar[str] = "type_text"
    text: str

    @property
    def value(self) -> str:
        return self.text

    @classmethod
    def from_value(cls, value: str) -> "TypeText":
        return cls(text=value)


@dataclass(frozen=True)
class PressKey:
    kind: ClassVar[str] = "press_key"
    key: str = "enter"

    @property
    def value(self) -> str:
        return self.key

    @classmethod
    def from_value(cls, value: str) -> "PressKey":
        return cls(key=value.strip() or "enter")


@dataclass(frozen=True)
class KeyCombo:
    kind: ClassVar[str] = "key_combo"
    keys: tuple[str, ...]

    @property
    def value(self) -> str:
        return "+".join(self.keys)

    @classmethod
    def from_value(cls, value: str) -> "KeyCombo":
        keys = tuple(k.strip().lower() for k in value.split("+") if k.strip())
        if not keys:
            raise ActionParseError(f"Expected a key combination, got {value!r}")
        return cls(keys=keys)


@dataclass(frozen=True)
class Scroll:
    kind: ClassVar[str] = "scroll"
    direction: str = "down"
    amount: int = 3

    @property
    def value(self) -> str:
        return self.direction

    @classmethod
    def from_value(cls, value: str) -> "Scroll":
        text = value.strip().lower()
        direction = "up" if "up" in text else "down"
        match = re.search(r"\d+", text)
        amount = int(match.group(0)) if match else 3
        return cls(direction=direction, amount=amount)


@dataclass(frozen=True)
class Navigate:
    kind: ClassVar[str] = "navigate"
    url: str

    @property
    def value(self) -> str:
        return self.url

    @classmethod
    def from_value(cls, value: str) -> "Navigate":
        if not value.strip():
            raise ActionParseError("navigate needs a URL")
        return cls(url=value.strip())


@dataclass(frozen=True)
class Wait:
    kind: ClassVar[str] = "wait"
    seconds: float = 2.0

    @property
    def value(self) -> str:
        return f"{self.seconds:g}"

    @classmethod
    def from_value(cls, value: str) -> "Wait":
        match = re.search(r"\d+(?:\.\d+)?", value)
        return cls(seconds=float(match.group(0)) if match else 2.0)


@dataclass(frozen=True)
class FocusWindow:
    kind: ClassVar[str] = "focus_window"
    title: str

    @property
    def value(self) -> str:
        return self.title

    @classmethod
    def from_value(cls, value: str) -> "FocusWindow":
        return cls(title=value.strip())


@dataclass(frozen=True)
class Screenshot:
    kind: ClassVar[str] = "screenshot"

    @property
    def value(self) -> str:
        return ""

    @classmethod
    def from_value(cls, value: str) -> "Screenshot":
        return cls()


@dataclass(frozen=True)
class OpenApp:
    kind: ClassVar[str] = "open_app"
    name: str

    @property
    def value(self) -> str:
        return self.name

    @classmethod
    def from_value(cls, value: str) -> "OpenApp":
        if not value.strip():
            raise ActionParseError("open_app needs an application name")
        return cls(name=value.strip())


@dataclass(frozen=True)
class OpenFolder:
    kind: ClassVar[str] = "open_folder"
    path: str

    @property
    def value(self) -> str:
        return self.path

    @classmethod
    def from_value(cls, value: str) -> "OpenFolder":
        return cls(path=value.strip() or ".")


@dataclass(frozen=True)
class ReadFile:
    kind: ClassVar[str] = "read_file"
    path: str

    @property
    def value(self) -> str:
        return self.path

    @classmethod
    def from_value(cls, value: str) -> "ReadFile":
        if not value.strip():
            raise ActionParseError("read_file needs a path")
        return cls(path=value.strip())


@dataclass(frozen=True)
class WriteFile:
    kind: ClassVar[str] = "write_file"
    path: str
    content: str = ""

    @property
    def value(self) -> str:
        return f"{self.path}|{self.content}"

    @classmethod
    def from_value(cls, value: str) -> "WriteFile":
        path, content = _split_pair(value)
        if not path:
            raise ActionParseError("write_file needs a path")
        return cls(path=path, content=content)


@dataclass(frozen=True)
class ListFiles:
    kind: ClassVar[str] = "list_files"
    path: str = "."

    @property
    def value(self) -> str:
        return self.path

    @classmethod
    def from_value(cls, value: str) -> "ListFiles":
        return cls(path=value.strip() or ".")


@dataclass(frozen=True)
class GenerateCode:
    kind: ClassVar[str] = "generate_code"
    path: str
    description: str

    @property
    def value(self) -> str:
        return f"{self.path}|{self.description}"

    @classmethod
    def from_value(cls, value: str) -> "GenerateCode":
        path, description = _split_pair(value)
        if not path or not description.strip():
            raise ActionParseError("generate_code needs 'path|description'")
        return cls(path=path, description=description.strip())


@dataclass(frozen=True)
class EditCode:
    kind: ClassVar[str] = "edit_code"
    path: str
    instruction: str

    @property
    def value(self) -> str:
        return f"{self.path}|{self.instruction}"

    @classmethod
    def from_value(cls, value: str) -> "EditCode":
        path, instruction = _split_pair(value)
        if not path or not instruction.strip():
            raise ActionParseError("edit_code needs 'path|instruction'")
        return cls(path=path, instruction=instruction.strip())


@dataclass(frozen=True)
class RunShell:
    kind: ClassVar[str] = "run_shell"
    command: str

    @property
    def value(self) -> str:
        return self.command

    @classmethod
    def from_value(cls, value: str) -> "RunShell":
        if not value.strip():
            raise ActionParseError("run_shell needs a command")
        return cls(command=value.strip())


@dataclass(frozen=True)
class OpenUrl:
    kind: ClassVar[str] = "open_url"
    url: str

    @property
    def value(self) -> str:
        return self.url

    @classmethod
    def from_value(cls, value: str) -> "OpenUrl":
        if not value.strip():
            raise ActionParseError("open_url needs a URL")
        return cls(url=value.strip())


@dataclass(frozen=True)
class BrowseAndAsk:
    kind: ClassVar[str] = "browse_and_ask"
    site: str
    question: str

    @property
    def value(self) -> str:
        return f"{self.site}|{self.question}"

    @classmethod
    def from_value(cls, value: str) -> "BrowseAndAsk":
        site, question = _split_pair(value)
        if not question.strip():
            # A bare question goes to the default research site
            return cls(site="perplexity", question=site)
        return cls(site=site.lower(), question=question.strip())


@dataclass(frozen=True)
class RunTask:
    """A multi-step sub-goal handed to the task planner."""

    kind: ClassVar[str] = "task"
    instruction: str

    @property
    def value(self) -> str:
        return self.instruction

    @classmethod
    def from_value(cls, value: str) -> "RunTask":
        if not value.strip():
            raise ActionParseError("task needs an instruction")
        return cls(instruction=value.strip())


@dataclass(frozen=True)
class Note:
    """Records a request that could not be resolved into concrete actions."""

    kind: ClassVar[str] = "note"
    text: str

    @property
    def value(self) -> str:
        return self.text

    @classmethod
    def from_value(cls, value: str) -> "Note":
        return cls(text=value)


@dataclass(frozen=True)
class RawAction:
    """An action kind nobody knows how to perform."""

    kind: str
    value: str = ""


Action = Union[
    Click,
    ClickAt,
    MoveTo,
    TypeText,
    PressKey,
    KeyCombo,
    Scroll,
    Navigate,
    Wait,
    FocusWindow,
    Screenshot,
    OpenApp,
    OpenFolder,
    ReadFile,
    WriteFile,
    ListFiles,
    GenerateCode,
    EditCode,
    RunShell,
    OpenUrl,
    BrowseAndAsk,
    RunTask,
    Note,
    RawAction,
]

ACTION_TYPES: dict[str, type] = {
    cls.kind: cls
    for cls in (
        Click, ClickAt, MoveTo, TypeText, PressKey, KeyCombo, Scroll, Navigate,
        Wait, FocusWindow, Screenshot, OpenApp, OpenFolder, ReadFile, WriteFile,
        ListFiles, GenerateCode, EditCode, RunShell, OpenUrl, BrowseAndAsk,
        RunTask, Note,
    )
}

# Spellings advisors commonly use, keyed by canonical form
_ALIASES: dict[str, str] = {
    "type": "type_text",
    "press": "press_key",
    "key": "press_key",
    "hotkey": "key_combo",
    "combo": "key_combo",
    "shell": "run_shell",
    "runcommand": "run_shell",
    "command": "run_shell",
    "openapplication": "open_app",
    "launch": "open_app",
    "listdir": "list_files",
    "askai": "browse_and_ask",
    "chat": "note",
    "runtask": "task",
}


def canonical_kind(kind: str) -> str:
    """Map any spelling of an action kind to its registered name.

    ``clickAt``, ``click_at`` and ``click-at`` all become ``click_at``.
    Unrecognised kinds come back lower-cased.
    """
    squashed = re.sub(r"[\s_\-]", "", kind).lower()
    for registered in ACTION_TYPES:
        if registered.replace("_", "") == squashed:
            return registered
    return _ALIASES.get(squashed, kind.strip().lower())


def parse_action(kind: str, value: str = "") -> Action:
    """Decode an advisor's ``(kind, value)`` pair into a typed action.

    Unknown kinds become :class:`RawAction`; known kinds with an unusable
    value raise :class:`ActionParseError`.
    """
    name = canonical_kind(kind)
    cls = ACTION_TYPES.get(name)
    if cls is None:
        return RawAction(kind=name, value=value)
    return cls.from_value(value or "")


def parse_step_action(encoded: str) -> Action:
    """Decode the legacy ``"type:params"`` step encoding."""
    kind, _, params = encoded.partition(":")
    return parse_action(kind.strip(), params.strip())


def action_to_dict(action: Action) -> dict[str, Any]:
    """Serialize an action to its JSON form ``{"type": kind, ...fields}``."""
    if isinstance(action, RawAction):
        return {"type": action.kind, "value": action.value}
    data: dict[str, Any] = {"type": action.kind}
    for f in dataclasses.fields(action):
        val = getattr(action, f.name)
        data[f.name] = list(val) if isinstance(val, tuple) else val
    return data


_FIELD_TYPES = {"int": int, "float": float, "str": str}


def _coerce_field(kind: str, name: str, annotation: str, val: Any) -> Any:
    """Convert a JSON field to the scalar type its dataclass field declares."""
    convert = _FIELD_TYPES.get(annotation)
    if convert is None:
        return val
    if isinstance(val, bool) or not isinstance(val, (str, int, float)):
        raise ActionParseError(f"Invalid {name} for {kind}: {val!r}")
    try:
        return convert(val)
    except ValueError:
        raise ActionParseError(f"Invalid {name} for {kind}: {val!r}") from None


def action_from_dict(data: dict[str, Any]) -> Action:
    """Rebuild an action from :func:`action_to_dict` output.

    Also accepts ``{"type": kind, "value": "..."}`` as produced by planners
    that stick to the flat encoding.
    """
    kind = canonical_kind(str(data.get("type", "")))
    cls = ACTION_TYPES.get(kind)
    if cls is None:
        return RawAction(kind=kind, value=str(data.get("value", "")))

    annotations = {f.name: f.type for f in dataclasses.fields(cls)}
    kwargs = {k: v for k, v in data.items() if k in annotations}
    if not kwargs and "value" in data:
        return cls.from_value(str(data["value"]))
    if "keys" in kwargs:
        keys = kwargs["keys"]
        if isinstance(keys, str):
            keys = keys.split("+")
        elif not isinstance(keys, (list, tuple)):
            raise ActionParseError(f"Invalid keys for {kind}: {keys!r}")
        kwargs["keys"] = tuple(str(k).strip().lower() for k in keys)
    kwargs = {k: _coerce_field(kind, k, annotations[k], v) for k, v in kwargs.items()}
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ActionParseError(f"Invalid fields for {kind}: {e}") from None


def describe_action(action: Action) -> str:
    """Short ``"kind: value"`` rendering for prompts and history."""
    return f"{action.kind}: {action.value}" if action.value else action.kind
