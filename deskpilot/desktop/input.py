"""Mouse, keyboard and window control through native platform commands.

Linux uses ``xdotool`` and ``wmctrl``, macOS uses ``cliclick`` and
``osascript``, Windows uses PowerShell. Every command is built as an argument
list (no shell interpolation) and run with ``asyncio.create_subprocess_exec``.
"""

from __future__ import annotations

import asyncio
import logging
import re
import sys

from deskpilot.errors import CommandError

logger = logging.getLogger(__name__)

_WIN_MOUSE = (
    'Add-Type -MemberDefinition \'[DllImport("user32.dll")] public static extern void '
    "mouse_event(long dwFlags, long dx, long dy, long cButtons, long dwExtraInfo);' "
    "-Name Mouse -Namespace Win32; "
)
_WIN_BUTTON_FLAGS = {"left": (0x02, 0x04), "right": (0x08, 0x10), "middle": (0x20, 0x40)}
_WIN_FORMS = "Add-Type -AssemblyName System.Windows.Forms; "
_WIN_KEYS = {
    "enter": "{ENTER}", "return": "{ENTER}", "escape": "{ESC}", "esc": "{ESC}",
    "tab": "{TAB}", "space": " ", "backspace": "{BACKSPACE}", "delete": "{DELETE}",
    "up": "{UP}", "down": "{DOWN}", "left": "{LEFT}", "right": "{RIGHT}",
    "home": "{HOME}", "end": "{END}", "pageup": "{PGUP}", "pagedown": "{PGDN}",
    **{f"f{n}": f"{{F{n}}}" for n in range(1, 13)},
}
_WIN_MODIFIERS = {"control": "^", "ctrl": "^", "alt": "%", "shift": "+"}

_MAC_KEY_CODES = {
    "return": 36, "enter": 36, "escape": 53, "esc": 53, "tab": 48, "space": 49,
    "backspace": 51, "delete": 117, "up": 126, "down": 125, "left": 123, "right": 124,
}
_MAC_MODIFIERS = {
    "control": "control down", "ctrl": "control down", "alt": "option down",
    "option": "option down", "shift": "shift down", "command": "command down",
    "cmd": "command down", "meta": "command down", "super": "command down",
}

_XDOTOOL_KEYS = {
    "enter": "Return", "return": "Return", "escape": "Escape", "esc": "Escape",
    "tab": "Tab", "space": "space", "backspace": "BackSpace", "delete": "Delete",
    "up": "Up", "down": "Down", "left": "Left", "right": "Right",
    "home": "Home", "end": "End", "pageup": "Prior", "pagedown": "Next",
    "control": "ctrl", "meta": "super", "win": "super", "cmd": "super",
}
_XDOTOOL_BUTTONS = {"left": "1", "middle": "2", "right": "3"}


def _ps_quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _sendkeys_escape(text: str) -> str:
    return re.sub(r"([+^%~(){}\[\]])", r"{\1}", text)


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class InputController:
    """Platform input commands.

    The ``*_command`` methods only build argument lists; the coroutine
    methods run them and raise :class:`CommandError` on failure.
    """

    def __init__(self, platform: str | None = None, timeout: float = 15.0):
        self.platform = platform or sys.platform
        self.timeout = timeout

    @property
    def is_windows(self) -> bool:
        return self.platform.startswith("win")

    @property
    def is_mac(self) -> bool:
        return self.platform == "darwin"

    async def run(self, *args: str) -> str:
        """Run one command and return its stdout."""
        logger.debug("Running %s", args[0])
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise CommandError(f"{args[0]} is not installed") from None

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            raise CommandError(f"{args[0]} timed out after {self.timeout}s") from None

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise CommandError(f"{args[0]} exited with code {process.returncode}: {detail}")
        return stdout.decode("utf-8", errors="replace")

    @staticmethod
    def _powershell(script: str) -> list[str]:
        return ["powershell", "-NoProfile", "-Command", script]

    # ------------------------------------------------------------------
    # Command builders
    # ------------------------------------------------------------------

    def move_mouse_command(self, x: int, y: int) -> list[str]:
        if self.is_windows:
            return self._powershell(
                _WIN_FORMS
                + f"[System.Windows.Forms.Cursor]::Position = New-Object System.Drawing.Point({x}, {y})"
            )
        if self.is_mac:
            return ["cliclick", f"m:{x},{y}"]
        return ["xdotool", "mousemove", str(x), str(y)]

    def click_command(self, button: str = "left") -> list[str]:
        if self.is_windows:
            down, up = _WIN_BUTTON_FLAGS.get(button, _WIN_BUTTON_FLAGS["left"])
            return self._powershell(
                _WIN_MOUSE
                + f"[Win32.Mouse]::mouse_event({down}, 0, 0, 0, 0); "
                + f"[Win32.Mouse]::mouse_event({up}, 0, 0, 0, 0)"
            )
        if self.is_mac:
            return ["cliclick", "rc:." if button == "right" else "c:."]
        return ["xdotool", "click", _XDOTOOL_BUTTONS.get(button, "1")]

    def type_command(self, text: str) -> list[str]:
        if self.is_windows:
            return self._powershell(
                _WIN_FORMS + f"[System.Windows.Forms.SendKeys]::SendWait({_ps_quote(_sendkeys_escape(text))})"
            )
        if self.is_mac:
            return [
                "osascript", "-e",
                f'tell application "System Events" to keystroke {_applescript_quote(text)}',
            ]
        return ["xdotool", "type", "--", text]

    def press_key_command(self, key: str) -> list[str]:
        lower = key.lower()
        if self.is_windows:
            win_key = _WIN_KEYS.get(lower, key)
            return self._powershell(
                _WIN_FORMS + f"[System.Windows.Forms.SendKeys]::SendWait({_ps_quote(win_key)})"
            )
        if self.is_mac:
            code = _MAC_KEY_CODES.get(lower)
            script = (
                f'tell application "System Events" to key code {code}'
                if code is not None
                else f'tell application "System Events" to keystroke {_applescript_quote(key)}'
            )
            return ["osascript", "-e", script]
        return ["xdotool", "key", _XDOTOOL_KEYS.get(lower, key)]

    def key_combo_command(self, keys: tuple[str, ...] | list[str]) -> list[str]:
        lowered = [k.lower() for k in keys]
        if self.is_windows:
            combo = "".join(_WIN_MODIFIERS[k] for k in lowered if k in _WIN_MODIFIERS)
            combo += "".join(
                _WIN_KEYS.get(k, k) for k in lowered
                if k not in _WIN_MODIFIERS and k not in ("meta", "win")
            )
            return self._powershell(
                _WIN_FORMS + f"[System.Windows.Forms.SendKeys]::SendWait({_ps_quote(combo)})"
            )
        if self.is_mac:
            modifiers = [_MAC_MODIFIERS[k] for k in lowered if k in _MAC_MODIFIERS]
            regular = "".join(k for k in lowered if k not in _MAC_MODIFIERS)
            script = f'tell application "System Events" to keystroke {_applescript_quote(regular)}'
            if modifiers:
                script += " using {" + ", ".join(modifiers) + "}"
            return ["osascript", "-e", script]
        return ["xdotool", "key", "+".join(_XDOTOOL_KEYS.get(k, k) for k in lowered)]

    def scroll_command(self, direction: str, amount: int) -> list[str]:
        up = direction == "up"
        if self.is_windows:
            delta = 120 * amount * (1 if up else -1)
            return self._powershell(_WIN_MOUSE + f"[Win32.Mouse]::mouse_event(0x0800, 0, 0, {delta}, 0)")
        if self.is_mac:
            return ["cliclick", "-r", f"{'u' if up else 'd'}:{amount}"]
        return ["xdotool", "click", "--repeat", str(amount), "4" if up else "5"]

    def focus_window_command(self, title: str) -> list[str]:
        if self.is_windows:
            return self._powershell(
                f"(New-Object -ComObject WScript.Shell).AppActivate({_ps_quote(title)})"
            )
        if self.is_mac:
            return ["osascript", "-e", f"tell application {_applescript_quote(title)} to activate"]
        return ["wmctrl", "-a", title]

    def mouse_position_command(self) -> list[str]:
        if self.is_windows:
            return self._powershell(
                _WIN_FORMS
                + '$p = [System.Windows.Forms.Cursor]::Position; Write-Output "$($p.X),$($p.Y)"'
            )
        if self.is_mac:
            return ["cliclick", "p"]
        return ["xdotool", "getmouselocation"]

    def open_app_command(self, name: str) -> list[str]:
        if self.is_windows:
            return ["cmd", "/c", "start", "", name]
        if self.is_mac:
            return ["open", "-a", name]
        return ["sh", "-c", 'nohup "$0" >/dev/null 2>&1 &', name]

    def open_path_command(self, path: str) -> list[str]:
        if self.is_windows:
            return ["explorer", path]
        if self.is_mac:
            return ["open", path]
        return ["xdg-open", path]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def move_mouse(self, x: int, y: int) -> None:
        await self.run(*self.move_mouse_command(x, y))

    async def click(self, button: str = "left") -> None:
        await self.run(*self.click_command(button))

    async def type_text(self, text: str) -> None:
        await self.run(*self.type_command(text))

    async def press_key(self, key: str) -> None:
        await self.run(*self.press_key_command(key))

    async def key_combo(self, keys: tuple[str, ...] | list[str]) -> None:
        await self.run(*self.key_combo_command(keys))

    async def scroll(self, direction: str, amount: int) -> None:
        await self.run(*self.scroll_command(direction, amount))

    async def focus_window(self, title: str) -> None:
        await self.run(*self.focus_window_command(title))

    async def open_app(self, name: str) -> None:
        await self.run(*self.open_app_command(name))

    async def open_path(self, path: str) -> None:
        await self.run(*self.open_path_command(path))

    async def mouse_position(self) -> tuple[int, int] | None:
        """Current pointer position, or None when it cannot be read."""
        try:
            output = await self.run(*self.mouse_position_command())
        except CommandError as e:
            logger.debug("Mouse position unavailable: %s", e)
            return None
        match = re.search(r"(\d+)\D+?(\d+)", output)
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))
