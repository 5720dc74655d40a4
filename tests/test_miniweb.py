import pytest

from mwkit.miniweb import (
    ServerFlags,
    ServerSettings,
    UploadWriter,
    UsageError,
    describe,
    get_full_path,
    list_interfaces,
    parse_args,
    substitute,
)


def test_full_path_with_slash():
    assert get_full_path("/usr/bin/miniweb", "htdocs", 256) == "/usr/bin/htdocs"


def test_full_path_with_backslash():
    assert get_full_path("C:\\web\\miniweb.exe", "htdocs", 256) == "C:\\web\\htdocs"


def test_full_path_without_directory():
    assert get_full_path("miniweb", "htdocs", 256) == "htdocs"


def test_full_path_too_long():
    with pytest.raises(ValueError):
        get_full_path("/usr/bin/miniweb", "htdocs", 10)


def test_defaults():
    settings = parse_args(["/opt/mw/miniweb"])
    assert settings.port == 80
    assert settings.max_clients == 32
    assert settings.flags == ServerFlags.DIR_LISTING
    assert settings.web_path == "/opt/mw/htdocs"
    assert settings.bind_ip is None


def test_options():
    settings = parse_args(
        ["miniweb", "-p", "8080", "-m", "10", "-M", "2", "-s", "100", "-n", "-d",
         "-r", "/srv/www", "-l", "server.log", "--mploop", "clip.avi"]
    )
    assert settings.port == 8080
    assert settings.max_clients == 10
    assert settings.max_clients_per_ip == 2
    assert settings.max_download_speed == 100
    assert settings.flags == ServerFlags.DISABLE_RANGE
    assert settings.web_path == "/srv/www"
    assert settings.log_file == "server.log"


def test_bind_address():
    assert parse_args(["miniweb", "-i", "127.0.0.1"]).bind_ip == "127.0.0.1"
    assert parse_args(["miniweb", "-i", "0.0.0.0"]).bind_ip is None


def test_bad_bind_address():
    with pytest.raises(UsageError):
        parse_args(["miniweb", "-i", "not-an-address"])


def test_help_raises_usage():
    with pytest.raises(UsageError, match="display this help screen"):
        parse_args(["miniweb", "-h"])


@pytest.mark.parametrize("argv", [["miniweb", "-r"], ["miniweb", "-r", ""], ["miniweb", "-r", "x" * 300]])
def test_bad_root(argv):
    with pytest.raises(UsageError, match="invalid or too long path argument"):
        parse_args(argv)


def test_root_too_long():
    with pytest.raises(UsageError, match="root path ends up too long"):
        parse_args(["/" + "d" * 300 + "/miniweb"])


def test_substitute():
    assert substitute("mykeyword") == "1234"
    assert substitute("other") is None


def test_list_interfaces_format():
    lines = list_interfaces("> ", 8080)
    assert all(line.startswith("> ") and ":8080 (" in line and line.endswith(")") for line in lines)


def test_describe_bound():
    settings = ServerSettings(port=8080, bind_ip="127.0.0.1", web_path="/srv/www", max_clients_per_ip=4)
    lines = describe(settings, 1).splitlines()
    assert lines[0] == "Host: 127.0.0.1:8080"
    assert "Web root: /srv/www" in lines
    assert "Max clients (per IP): 32 (4)" in lines
    assert "URL handlers: 1" in lines
    assert "Dir listing enabled" in lines
    assert "Byte-range disabled" not in lines


def test_describe_all_interfaces():
    settings = ServerSettings(port=8080, web_path="/srv/www", flags=ServerFlags.DISABLE_RANGE)
    lines = describe(settings).splitlines()
    assert lines[0] == "Host: port 8080 on all interfaces:"
    assert lines[1].startswith("  ") and ":8080 (" in lines[1]
    assert "Byte-range disabled" in lines
    assert "Dir listing enabled" not in lines


def test_upload_writer_chunks(tmp_path, capsys):
    with UploadWriter(tmp_path) as writer:
        assert writer.write_chunk("up.bin", b"abc") == 3
        assert writer.write_chunk("up.bin", b"def", last=True) == 3
    assert (tmp_path / "up.bin").read_bytes() == b"abcdef"
    assert "Received 3 bytes for multipart upload file up.bin" in capsys.readouterr().out


def test_upload_writer_abandon_and_restart(tmp_path):
    writer = UploadWriter(tmp_path)
    writer.write_chunk("a.txt", b"first")
    assert writer.write_chunk("a.txt", None) == 0
    writer.write_chunk("a.txt", b"second", last=True)
    writer.close()
    assert (tmp_path / "a.txt").read_bytes() == b"second"


def test_upload_writer_missing_directory(tmp_path):
    writer = UploadWriter(tmp_path / "missing")
    with pytest.raises(OSError):
        writer.write_chunk("a.txt", b"data")