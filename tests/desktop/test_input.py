"""Tests for platform input command building."""

import pytest

from deskpilot.desktop.input import InputController
from deskpilot.errors import CommandError


class RecordingController(InputController):
    def __init__(self, platform="linux", output=""):
        super().__init__(platform=platform)
        self.commands: list[tuple[str, ...]] = []
        self.output = output

    async def run(self, *args: str) -> str:
        self.commands.append(args)
        return self.output


class TestPlatformDetection:
    def test_linux(self):
        controller = InputController(platform="linux")
        assert not controller.is_windows
        assert not controller.is_mac

    def test_mac(self):
        assert InputController(platform="darwin").is_mac

    def test_windows(self):
        assert InputController(platform="win32").is_windows


class TestLinuxCommands:
    @pytest.fixture
    def controller(self):
        return InputController(platform="linux")

    def test_move_and_click(self, controller):
        assert controller.move_mouse_command(10, 20) == ["xdotool", "mousemove", "10", "20"]
        assert controller.click_command() == ["xdotool", "click", "1"]
        assert controller.click_command("right") == ["xdotool", "click", "3"]

    def test_type_is_not_shell_interpolated(self, controller):
        text = "$(rm -rf ~); echo 'hi'"
        assert controller.type_command(text) == ["xdotool", "type", "--", text]

    def test_press_key_mapping(self, controller):
        assert controller.press_key_command("enter") == ["xdotool", "key", "Return"]
        assert controller.press_key_command("Escape") == ["xdotool", "key", "Escape"]
        assert controller.press_key_command("a") == ["xdotool", "key", "a"]

    def test_key_combo(self, controller):
        assert controller.key_combo_command(("control", "s")) == ["xdotool", "key", "ctrl+s"]
        assert controller.key_combo_command(["ctrl", "shift", "t"]) == ["xdotool", "key", "ctrl+shift+t"]

    def test_scroll(self, controller):
        assert controller.scroll_command("up", 3) == ["xdotool", "click", "--repeat", "3", "4"]
        assert controller.scroll_command("down", 2) == ["xdotool", "click", "--repeat", "2", "5"]

    def test_windows_and_apps(self, controller):
        assert controller.focus_window_command("Firefox") == ["wmctrl", "-a", "Firefox"]
        assert controller.open_path_command("/tmp") == ["xdg-open", "/tmp"]
        command = controller.open_app_command("gedit")
        assert command[0] == "sh"
        assert command[-1] == "gedit"


class TestMacCommands:
    @pytest.fixture
    def controller(self):
        return InputController(platform="darwin")

    def test_mouse(self, controller):
        assert controller.move_mouse_command(5, 6) == ["cliclick", "m:5,6"]
        assert controller.click_command() == ["cliclick", "c:."]
        assert controller.click_command("right") == ["cliclick", "rc:."]

    def test_type_quotes_text(self, controller):
        command = controller.type_command('say "hi"')
        assert command[:2] == ["osascript", "-e"]
        assert 'keystroke "say \\"hi\\""' in command[2]

    def test_press_key_uses_key_code(self, controller):
        assert "key code 36" in controller.press_key_command("enter")[2]

    def test_key_combo_modifiers(self, controller):
        script = controller.key_combo_command(("cmd", "s"))[2]
        assert 'keystroke "s"' in script
        assert "using {command down}" in script

    def test_open_app(self, controller):
        assert controller.open_app_command("Safari") == ["open", "-a", "Safari"]


class TestWindowsCommands:
    @pytest.fixture
    def controller(self):
        return InputController(platform="win32")

    def test_uses_powershell(self, controller):
        command = controller.type_command("hello")
        assert command[:3] == ["powershell", "-NoProfile", "-Command"]
        assert "SendWait('hello')" in command[3]

    def test_sendkeys_specials_escaped(self, controller):
        script = controller.type_command("a+b")[3]
        assert "SendWait('a{+}b')" in script

    def test_single_quotes_doubled(self, controller):
        script = controller.type_command("it's")[3]
        assert "SendWait('it''s')" in script

    def test_key_combo(self, controller):
        script = controller.key_combo_command(("ctrl", "s"))[3]
        assert "SendWait('^s')" in script

    def test_press_key(self, controller):
        assert "SendWait('{ENTER}')" in controller.press_key_command("enter")[3]

    def test_open_app(self, controller):
        assert controller.open_app_command("notepad") == ["cmd", "/c", "start", "", "notepad"]


class TestRun:
    @pytest.mark.asyncio
    async def test_missing_tool(self):
        controller = InputController(platform="linux")
        with pytest.raises(CommandError, match="not installed"):
            await controller.run("deskpilot-no-such-tool-xyz")

    @pytest.mark.asyncio
    async def test_nonzero_exit(self):
        controller = InputController(platform="linux")
        with pytest.raises(CommandError, match="code 2"):
            await controller.run("sh", "-c", "echo oops >&2; exit 2")

    @pytest.mark.asyncio
    async def test_stdout(self):
        controller = InputController(platform="linux")
        assert (await controller.run("echo", "hello")).strip() == "hello"


class TestOperations:
    @pytest.mark.asyncio
    async def test_operations_run_built_commands(self):
        controller = RecordingController()

        await controller.click()
        await controller.key_combo(("ctrl", "c"))

        assert controller.commands == [("xdotool", "click", "1"), ("xdotool", "key", "ctrl+c")]

    @pytest.mark.asyncio
    async def test_mouse_position_parsed(self):
        controller = RecordingController(output="x:640 y:480 screen:0 window:123")
        assert await controller.mouse_position() == (640, 480)

    @pytest.mark.asyncio
    async def test_mouse_position_unreadable(self):
        controller = RecordingController(output="")
        assert await controller.mouse_position() is None
