"""Screen sensor - screenshots described by a vision-capable model."""

from __future__ import annotations

import base64
import hashlib
import logging
import tempfile
import uuid
from pathlib import Path

from deskpilot.desktop.base import Observation, SituationSensor
from deskpilot.desktop.input import InputController
from deskpilot.errors import CommandError, SensorError
from deskpilot.providers.base import LLMProvider

logger = logging.getLogger(__name__)

VISION_PROMPT = """Look at this screenshot and describe:
1. What application or window is visible
2. Key UI elements you can see (buttons, text fields, menus) and roughly where they are
3. Any notable content or state

Be concise but specific."""


class ScreenSensor(SituationSensor):
    """Captures the primary screen and asks a vision model to describe it.

    ``identity()`` hashes the raw screenshot without calling the model, so
    verification after an action stays cheap.
    """

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        controller: InputController | None = None,
        max_tokens: int = 600,
    ):
        self.provider = provider
        self.model = model or provider.get_default_model()
        self.controller = controller or InputController()
        self.max_tokens = max_tokens

    def capture_commands(self, target: Path) -> list[list[str]]:
        """Candidate screenshot commands for this platform, tried in order."""
        if self.controller.is_windows:
            script = (
                "Add-Type -AssemblyName System.Windows.Forms; Add-Type -AssemblyName System.Drawing; "
                "$s = [System.Windows.Forms.Screen]::PrimaryScreen.Bounds; "
                "$b = New-Object System.Drawing.Bitmap($s.Width, $s.Height); "
                "$g = [System.Drawing.Graphics]::FromImage($b); "
                "$g.CopyFromScreen($s.Location, [System.Drawing.Point]::Empty, $s.Size); "
                f"$b.Save('{target}'); $g.Dispose(); $b.Dispose()"
            )
            return [["powershell", "-NoProfile", "-Command", script]]
        if self.controller.is_mac:
            return [["screencapture", "-x", str(target)]]
        return [
            ["gnome-screenshot", "-f", str(target)],
            ["scrot", "--overwrite", str(target)],
            ["import", "-window", "root", str(target)],
        ]

    async def screenshot(self) -> bytes:
        """Raw PNG bytes of the primary screen."""
        target = Path(tempfile.gettempdir()) / f"deskpilot-screen-{uuid.uuid4().hex[:8]}.png"
        errors = []
        try:
            for command in self.capture_commands(target):
                try:
                    await self.controller.run(*command)
                except CommandError as e:
                    errors.append(str(e))
                    continue
                if target.exists():
                    return target.read_bytes()
        finally:
            target.unlink(missing_ok=True)

        raise SensorError("Failed to capture screen: " + ("; ".join(errors) or "no output"))

    @staticmethod
    def hash_image(image: bytes) -> str:
        return hashlib.sha256(image).hexdigest()[:16]

    async def describe(self, image: bytes) -> str:
        """Ask the vision model what the screenshot shows."""
        b64 = base64.b64encode(image).decode()
        messages = [{
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{b64}"}},
                {"type": "text", "text": VISION_PROMPT},
            ],
        }]
        response = await self.provider.chat(
            messages=messages,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=0.2,
        )
        if response.is_error or not response.content:
            raise SensorError(response.content or "Vision model returned nothing")
        return response.content.strip()

    async def capture(self) -> Observation:
        image = await self.screenshot()
        description = await self.describe(image)
        logger.debug("Screen described in %d chars", len(description))
        return Observation(description=description, identity_hash=self.hash_image(image))

    async def identity(self) -> str:
        return self.hash_image(await self.screenshot())
