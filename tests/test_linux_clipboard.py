from clipo.clipboard.linux import LinuxClipboard


class ScriptedLinuxClipboard(LinuxClipboard):
    """Answers xclip invocations from an in-memory target table."""

    def __init__(self, targets=None):
        super().__init__()
        self.targets = dict(targets or {})
        self.commands = []

    def _backend(self):
        return "x11"

    def _run_command(self, command, timeout, input=None):
        self.commands.append((command, input))
        if input is not None:
            return b""
        if "TARGETS" in command:
            return "\n".join(self.targets).encode("utf-8")
        target = command[command.index("-t") + 1]
        return self.targets.get(target)


def test_counter_moves_only_when_contents_change():
    clip = ScriptedLinuxClipboard({"UTF8_STRING": b"one"})

    first = clip.change_count()
    assert clip.change_count() == first

    clip.targets["UTF8_STRING"] = b"two"
    assert clip.change_count() == first + 1


def test_read_string_prefers_utf8_targets():
    clip = ScriptedLinuxClipboard({"STRING": b"latin", "UTF8_STRING": "café".encode("utf-8")})
    assert clip.read_string() == "café"


def test_read_image_reports_format():
    clip = ScriptedLinuxClipboard({"image/png": b"\x89PNG"})
    assert clip.read_image() == (b"\x89PNG", "png")


def test_read_file_urls_parses_gnome_format():
    payload = b"copy\nfile:///home/me/My%20Doc.txt\nfile:///tmp/b.png"
    clip = ScriptedLinuxClipboard({"x-special/gnome-copied-files": payload})
    assert clip.read_file_urls() == ["/home/me/My Doc.txt", "/tmp/b.png"]


def test_missing_representations_read_as_none():
    clip = ScriptedLinuxClipboard({})
    assert clip.read_string() is None
    assert clip.read_image() is None
    assert clip.read_file_urls() is None


def test_write_text_pipes_into_xclip(monkeypatch):
    monkeypatch.setattr("clipo.clipboard.linux.shutil.which", lambda name: "/usr/bin/" + name)
    clip = ScriptedLinuxClipboard()

    assert clip.write_text("hi")
    assert clip.commands[-1] == (["xclip", "-selection", "clipboard"], b"hi")

    assert clip.write_image(b"img", "jpeg")
    assert clip.commands[-1] == (["xclip", "-selection", "clipboard", "-t", "image/jpeg"], b"img")
