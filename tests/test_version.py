import io
import platform

from euterpe import version


def test_printed_version_contains_version_string():
    buff = io.StringIO()
    version.print_version(buff)
    assert version.VERSION in buff.getvalue()


def test_printed_version_contains_python_version():
    buff = io.StringIO()
    version.print_version(buff)
    assert platform.python_version() in buff.getvalue()


def test_printed_version_first_line():
    buff = io.StringIO()
    version.print_version(buff)
    lines = buff.getvalue().splitlines()
    assert lines[0] == f"Euterpe Media Server {version.VERSION}"
    assert len(lines[0]) > len("Euterpe Media Server ")
    assert len(lines) == 2