"""Default action executor for the local desktop."""

from __future__ import annotations

import asyncio
import logging
import random
import re
import webbrowser
from pathlib import Path
from typing import Awaitable, Callable
from urllib.parse import quote_plus

from deskpilot.actions import (
    Action,
    BrowseAndAsk,
    Click,
    ClickAt,
    EditCode,
    FocusWindow,
    GenerateCode,
    KeyCombo,
    ListFiles,
    MoveTo,
    Navigate,
    Note,
    OpenApp,
    OpenFolder,
    OpenUrl,
    PressKey,
    RawAction,
    ReadFile,
    RunShell,
    RunTask,
    Screenshot,
    Scroll,
    TypeText,
    Wait,
    WriteFile,
)
from deskpilot.advisor import Advisor
from deskpilot.desktop.base import ActionExecutor, ActionResult, SituationSensor
from deskpilot.desktop.input import InputController
from deskpilot.desktop.prompts import CODER_SYSTEM_PROMPT, EDIT_CODE_PROMPT, GENERATE_CODE_PROMPT
from deskpilot.errors import DeskPilotError, UnknownActionError

logger = logging.getLogger(__name__)

MAX_OUTPUT_CHARS = 10000
MAX_FILE_CHARS = 50000

# Query URLs for sites that accept a question in the address bar
ASK_SITES = {
    "perplexity": "https://www.perplexity.ai/search?q={q}",
    "chatgpt": "https://chatgpt.com/?q={q}",
    "claude": "https://claude.ai/new?q={q}",
    "google": "https://www.google.com/search?q={q}",
    "bing": "https://www.bing.com/search?q={q}",
}

_CODE_BLOCK_RE = re.compile(r"```[\w+-]*\n(.*?)```", re.DOTALL)


def extract_code(reply: str) -> str:
    """Body of the first fenced code block, or the whole reply when unfenced."""
    match = _CODE_BLOCK_RE.search(reply)
    code = match.group(1) if match else reply.strip()
    return code if code.endswith("\n") else code + "\n"


def normalize_url(url: str) -> str:
    url = url.strip()
    if not re.match(r"^[a-z][a-z0-9+.-]*://", url, re.IGNORECASE):
        url = f"https://{url}"
    return url


class DesktopExecutor(ActionExecutor):
    """Performs actions with platform input commands, the filesystem, a shell
    and the default web browser.

    Code generation and screenshot description need an advisor and a sensor;
    without them those actions fail.
    """

    # Patterns for commands that are never run
    DANGEROUS_PATTERNS = [
        r"\brm\s+-[rf]{1,2}\b",
        r"\b(format|mkfs|diskpart)\b",
        r"\bdd\s+if=",
        r">\s*/dev/sd",
        r"\b(shutdown|reboot|poweroff)\b",
        r":\(\)\s*\{.*\};\s*:",
    ]

    def __init__(
        self,
        controller: InputController | None = None,
        advisor: Advisor | None = None,
        sensor: SituationSensor | None = None,
        workspace: Path | None = None,
        shell_timeout: int = 60,
        human_like: bool = True,
    ):
        self.controller = controller or InputController()
        self.advisor = advisor
        self.sensor = sensor
        self.workspace = workspace or Path.cwd()
        self.shell_timeout = shell_timeout
        self.human_like = human_like

        self._handlers: dict[type, Callable[[Action], Awaitable[str]]] = {
            Click: self._click,
            ClickAt: self._click_at,
            MoveTo: self._move_to,
            TypeText: self._type_text,
            PressKey: self._press_key,
            KeyCombo: self._key_combo,
            Scroll: self._scroll,
            Navigate: self._open_url,
            OpenUrl: self._open_url,
            Wait: self._wait,
            FocusWindow: self._focus_window,
            Screenshot: self._screenshot,
            OpenApp: self._open_app,
            OpenFolder: self._open_folder,
            ReadFile: self._read_file,
            WriteFile: self._write_file,
            ListFiles: self._list_files,
            GenerateCode: self._generate_code,
            EditCode: self._edit_code,
            RunShell: self._run_shell,
            BrowseAndAsk: self._browse_and_ask,
            Note: self._note,
        }

    async def execute(self, action: Action) -> ActionResult:
        handler = self._handlers.get(type(action))
        if handler is None:
            if isinstance(action, RunTask):
                return ActionResult.fail("task actions are run by the task planner")
            kind = action.kind if isinstance(action, RawAction) else type(action).__name__
            return ActionResult.fail(str(UnknownActionError(kind)))

        try:
            output = await handler(action)
        except (DeskPilotError, OSError, ValueError) as e:
            logger.warning("Action %s failed: %s", action.kind, e)
            return ActionResult.fail(str(e))
        return ActionResult.ok(output)

    def resolve(self, path: str) -> Path:
        """Expand ``~`` and anchor relative paths in the workspace."""
        p = Path(path).expanduser()
        return p if p.is_absolute() else self.workspace / p

    # ------------------------------------------------------------------
    # Mouse and keyboard
    # ------------------------------------------------------------------

    async def _click(self, action: Click) -> str:
        await self.controller.click(action.button)
        return f"Clicked {action.button}"

    async def _click_at(self, action: ClickAt) -> str:
        await self._move(action.x, action.y)
        await asyncio.sleep(0.1)
        await self.controller.click("left")
        return f"Clicked at ({action.x}, {action.y})"

    async def _move_to(self, action: MoveTo) -> str:
        await self._move(action.x, action.y)
        return f"Mouse moved to ({action.x}, {action.y})"

    async def _move(self, x: int, y: int) -> None:
        start = await self.controller.mouse_position() if self.human_like else None
        if start is None:
            await self.controller.move_mouse(x, y)
            return

        # Linear interpolation in ten steps
        steps = 10
        for i in range(1, steps + 1):
            t = i / steps
            await self.controller.move_mouse(
                round(start[0] + (x - start[0]) * t),
                round(start[1] + (y - start[1]) * t),
            )
            await asyncio.sleep(0.02)

    async def _type_text(self, action: TypeText) -> str:
        if not self.human_like:
            await self.controller.type_text(action.text)
            return f"Typed: {action.text}"

        for char in action.text:
            await self.controller.type_text(char)
            await asyncio.sleep(0.05 + random.random() * 0.03)
            if random.random() < 0.05:
                await asyncio.sleep(0.2 + random.random() * 0.3)
        return f"Typed: {action.text}"

    async def _press_key(self, action: PressKey) -> str:
        await self.controller.press_key(action.key)
        return f"Pressed {action.key}"

    async def _key_combo(self, action: KeyCombo) -> str:
        await self.controller.key_combo(action.keys)
        return f"Pressed {action.value}"

    async def _scroll(self, action: Scroll) -> str:
        await self.controller.scroll(action.direction, action.amount)
        return f"Scrolled {action.direction} by {action.amount}"

    async def _wait(self, action: Wait) -> str:
        await asyncio.sleep(action.seconds)
        return f"Waited {action.seconds:g}s"

    async def _focus_window(self, action: FocusWindow) -> str:
        await self.controller.focus_window(action.title)
        return f"Focused window: {action.title}"

    async def _screenshot(self, action: Screenshot) -> str:
        if self.sensor is None:
            raise DeskPilotError("No screen sensor configured")
        observation = await self.sensor.capture()
        return observation.description

    # ------------------------------------------------------------------
    # Applications and browser
    # ------------------------------------------------------------------

    async def _open_app(self, action: OpenApp) -> str:
        await self.controller.open_app(action.name)
        return f"Opened {action.name}"

    async def _open_folder(self, action: OpenFolder) -> str:
        folder = self.resolve(action.path)
        if not folder.is_dir():
            raise DeskPilotError(f"Not a directory: {action.path}")
        await self.controller.open_path(str(folder))
        return f"Opened folder {folder}"

    async def _open_url(self, action: Navigate | OpenUrl) -> str:
        url = normalize_url(action.url)
        opened = await asyncio.to_thread(webbrowser.open, url)
        if not opened:
            raise DeskPilotError(f"No browser available to open {url}")
        return f"Opened {url}"

    async def _browse_and_ask(self, action: BrowseAndAsk) -> str:
        template = ASK_SITES.get(action.site)
        if template is None:
            raise DeskPilotError(
                f"Unknown site: {action.site} (known: {', '.join(sorted(ASK_SITES))})"
            )
        url = template.format(q=quote_plus(action.question))
        opened = await asyncio.to_thread(webbrowser.open, url)
        if not opened:
            raise DeskPilotError(f"No browser available to open {url}")
        return f"Asked {action.site}: {action.question}"

    async def _note(self, action: Note) -> str:
        return f"Task noted: {action.text}"

    # ------------------------------------------------------------------
    # Files, shell and code
    # ------------------------------------------------------------------

    async def _read_file(self, action: ReadFile) -> str:
        p = self.resolve(action.path)
        if not p.is_file():
            raise DeskPilotError(f"File not found: {action.path}")
        content = p.read_text(encoding="utf-8", errors="replace")
        if len(content) > MAX_FILE_CHARS:
            content = content[:MAX_FILE_CHARS] + "\n... (truncated)"
        return content

    async def _write_file(self, action: WriteFile) -> str:
        p = self.resolve(action.path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(action.content, encoding="utf-8")
        return f"Wrote {len(action.content)} bytes to {action.path}"

    async def _list_files(self, action: ListFiles) -> str:
        p = self.resolve(action.path)
        if not p.is_dir():
            raise DeskPilotError(f"Not a directory: {action.path}")
        entries = [
            f"{'[DIR] ' if item.is_dir() else '[FILE]'} {item.name}"
            for item in sorted(p.iterdir())
        ]
        return "\n".join(entries) if entries else "(empty directory)"

    def is_dangerous(self, command: str) -> bool:
        lower = command.lower()
        return any(re.search(pattern, lower) for pattern in self.DANGEROUS_PATTERNS)

    async def _run_shell(self, action: RunShell) -> str:
        if self.is_dangerous(action.command):
            raise DeskPilotError("Command blocked by safety guard (potentially dangerous)")

        process = await asyncio.create_subprocess_shell(
            action.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(self.workspace),
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.shell_timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise DeskPilotError(f"Command timed out after {self.shell_timeout}s") from None

        output_parts = []
        if stdout:
            output_parts.append(stdout.decode("utf-8", errors="replace"))
        stderr_text = stderr.decode("utf-8", errors="replace").strip() if stderr else ""
        if stderr_text:
            output_parts.append(f"STDERR:\n{stderr_text}")

        result = "\n".join(output_parts) if output_parts else "(no output)"
        if len(result) > MAX_OUTPUT_CHARS:
            result = result[:MAX_OUTPUT_CHARS] + "\n... (truncated)"

        if process.returncode != 0:
            raise DeskPilotError(f"Exit code {process.returncode}: {result}")
        return result

    def _require_advisor(self) -> Advisor:
        if self.advisor is None:
            raise DeskPilotError("Code actions need an advisor")
        return self.advisor

    async def _generate_code(self, action: GenerateCode) -> str:
        advisor = self._require_advisor()
        reply = await advisor.decide(
            GENERATE_CODE_PROMPT.format(path=action.path, description=action.description),
            system=CODER_SYSTEM_PROMPT,
        )
        code = extract_code(reply)
        p = self.resolve(action.path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(code, encoding="utf-8")
        return f"Generated {action.path} ({len(code.splitlines())} lines)"

    async def _edit_code(self, action: EditCode) -> str:
        advisor = self._require_advisor()
        p = self.resolve(action.path)
        if not p.is_file():
            raise DeskPilotError(f"File not found: {action.path}")
        current = p.read_text(encoding="utf-8", errors="replace")
        reply = await advisor.decide(
            EDIT_CODE_PROMPT.format(path=action.path, content=current, instruction=action.instruction),
            system=CODER_SYSTEM_PROMPT,
        )
        p.write_text(extract_code(reply), encoding="utf-8")
        return f"Edited {action.path}"
