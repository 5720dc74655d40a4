import os
import sys
import textwrap
import time
from pathlib import Path

import pytest

from mwkit.process import Shell, ShellError, ShellFlags, shell_run, tokenize


def _cmd(tmp_path, body, name="child.py"):
    script = tmp_path / name
    script.write_text(textwrap.dedent(body))
    return f'"{sys.executable}" "{script}"'


def _collect(shell, size, limit=10.0):
    out = b""
    deadline = time.monotonic() + limit
    while len(out) < size and time.monotonic() < deadline:
        out += shell.read(500)
    return out


@pytest.mark.parametrize(
    "text, expected",
    [
        ("a b c", ["a", "b", "c"]),
        ("a   b", ["a", "b"]),
        ("abc", ["abc"]),
        ('"a b" c', ["a b", "c"]),
        ("a ", ["a", ""]),
        (" a", ["", "a"]),
        ('"open', ["open"]),
    ],
)
def test_tokenize(text, expected):
    assert tokenize(text) == expected


def test_tokenize_other_delimiter():
    assert tokenize("x,,y,z", ",") == ["x", "y", "z"]


def test_tokenize_rejects_long_delimiter():
    with pytest.raises(ValueError):
        tokenize("a b", "  ")


def test_write_then_read(tmp_path):
    cmd = _cmd(
        tmp_path,
        """
        import sys
        line = sys.stdin.buffer.readline()
        sys.stdout.buffer.write(line.upper())
        sys.stdout.buffer.flush()
        """,
    )
    with Shell(ShellFlags.REDIRECT_STDIN | ShellFlags.REDIRECT_STDOUT) as shell:
        shell.execute(cmd)
        assert shell.write(b"hello\n") == 6
        out = _collect(shell, 6)
    assert out == b"HELLO\n"


def test_wait_returns_exit_code(tmp_path):
    cmd = _cmd(tmp_path, "import sys\nsys.exit(3)\n")
    with Shell() as shell:
        shell.execute(cmd)
        assert shell.wait() == 3
        assert shell.returncode == 3


def test_read_times_out_and_terminate(tmp_path):
    cmd = _cmd(tmp_path, "import time\ntime.sleep(30)\n")
    shell = Shell(ShellFlags.REDIRECT_STDOUT)
    shell.execute(cmd)
    try:
        assert shell.read(50) == b""
        assert shell.wait(0) is None
        assert shell.running
    finally:
        shell.terminate()
        shell.clean()
    assert not shell.running
    assert shell.returncode is not None and shell.returncode != 0


def test_reads_limited_by_buffer_size(tmp_path):
    cmd = _cmd(
        tmp_path,
        """
        import sys
        sys.stdout.buffer.write(b"abcdefgh")
        sys.stdout.buffer.flush()
        """,
    )
    with Shell(ShellFlags.REDIRECT_STDOUT) as shell:
        shell.buffer_size = 4
        shell.execute(cmd)
        chunks = []
        deadline = time.monotonic() + 10
        while sum(map(len, chunks)) < 8 and time.monotonic() < deadline:
            chunk = shell.read(500)
            if chunk:
                chunks.append(chunk)
    assert b"".join(chunks) == b"abcdefgh"
    assert all(len(c) <= 3 for c in chunks)


def test_read_all_collects_everything(tmp_path):
    cmd = _cmd(
        tmp_path,
        """
        import sys, time
        sys.stdout.buffer.write(b"first\\n")
        sys.stdout.buffer.flush()
        time.sleep(0.1)
        sys.stdout.buffer.write(b"second\\n")
        """,
    )
    with Shell(ShellFlags.REDIRECT_STDOUT | ShellFlags.READ_STDOUT_ALL) as shell:
        shell.execute(cmd)
        out = shell.read(None)
    assert out == b"first\nsecond\n"


def test_stderr_merged_into_stdout(tmp_path):
    cmd = _cmd(
        tmp_path,
        """
        import sys
        sys.stderr.buffer.write(b"err")
        sys.stderr.buffer.flush()
        """,
    )
    flags = ShellFlags.REDIRECT_STDOUT | ShellFlags.REDIRECT_STDERR | ShellFlags.READ_STDOUT_ALL
    with Shell(flags) as shell:
        shell.execute(cmd)
        assert shell.read(None) == b"err"


def test_cwd_is_used(tmp_path):
    workdir = tmp_path / "work"
    workdir.mkdir()
    cmd = _cmd(
        tmp_path,
        """
        import os, sys
        sys.stdout.buffer.write(os.fsencode(os.getcwd()))
        """,
    )
    flags = ShellFlags.REDIRECT_STDOUT | ShellFlags.READ_STDOUT_ALL
    with Shell(flags, cwd=str(workdir)) as shell:
        shell.execute(cmd)
        out = shell.read(None)
    assert Path(os.fsdecode(out)).resolve() == workdir.resolve()


def test_path_is_appended(tmp_path):
    extra = str(tmp_path / "bin")
    cmd = _cmd(
        tmp_path,
        """
        import os, sys
        sys.stdout.buffer.write(os.environ["PATH"].encode())
        """,
    )
    flags = ShellFlags.REDIRECT_STDOUT | ShellFlags.READ_STDOUT_ALL
    with Shell(flags, path=extra) as shell:
        shell.execute(cmd)
        out = shell.read(None).decode()
    assert out.endswith(extra)
    assert len(out) > len(extra)


def test_shell_run_collects_output(tmp_path):
    cmd = _cmd(tmp_path, "import sys\nsys.stdout.buffer.write(b'done')\n")
    assert shell_run(cmd, ShellFlags.READ_STDOUT_ALL) == (0, b"done")


def test_shell_run_without_output(tmp_path):
    cmd = _cmd(tmp_path, "import sys\nsys.exit(7)\n")
    assert shell_run(cmd) == (7, b"")


def test_execute_twice_fails(tmp_path):
    cmd = _cmd(tmp_path, "import time\ntime.sleep(30)\n")
    with Shell() as shell:
        shell.execute(cmd)
        with pytest.raises(ShellError):
            shell.execute(cmd)


def test_execute_missing_program(tmp_path):
    missing = tmp_path / "no-such-program"
    with pytest.raises(ShellError):
        Shell().execute(f'"{missing}"')


def test_execute_empty_command():
    with pytest.raises(ShellError):
        Shell().execute("")


def test_write_without_stdin_pipe(tmp_path):
    cmd = _cmd(tmp_path, "pass\n")
    with Shell() as shell:
        shell.execute(cmd)
        with pytest.raises(ShellError):
            shell.write(b"x")


def test_read_without_stdout_pipe(tmp_path):
    cmd = _cmd(tmp_path, "pass\n")
    with Shell() as shell:
        shell.execute(cmd)
        with pytest.raises(ShellError):
            shell.read(10)


def test_wait_without_process():
    with pytest.raises(ShellError):
        Shell().wait(0)