# mwkit

Building blocks that sit around a small web server. It has byte buffers and
timers, serial ports, child processes, an HTTP/1.0 upload client, control of
a slave-mode media player, and the server's start-up settings.

## Modules

- **`mwkit.fifo`**: `Fifo(size)` is a fixed-size ring buffer of bytes. It
  holds at most `size - 1` bytes. It has `put`, `get`, `write`, `read`,
  `items` and `clear`. `put` returns False when the buffer is full and `get`
  returns None when it is empty.
- **`mwkit.timer`**: `Timer(msecs, on_expire)` is a one-shot timer. After
  `start()` it calls the optional callback and then `expired()` turns True.
  It can also be used as a context manager. `sleepms(ms)` sleeps for the
  given number of milliseconds.
- **`mwkit.iobase`**: `IOBase` is the abstract base for byte devices.
  Subclasses supply `_read_device` and `_write_device`. It adds:
  - `put_back`, which pushes a byte back so the next read returns it;
  - `readv` and `writev`, which keep going until the data is done or an
    optional timeout in milliseconds runs out;
  - `read_until_eos`, which reads up to an end-of-string sequence, can skip
    quoted text, and returns the data together with whether the sequence was
    found.
- **`mwkit.serialport`**: `SerialPort` is an `IOBase` built on pyserial.
  - `open(port, baudrate, protocol, flow_control)` takes a device name, a
    pyserial URL or a port number from 1.
  - It also has `close`, `is_open`, `read`, `write`, `send_break`,
    `set_baudrate`, `set_parity_bit` and `set_timeout`.
  - The DTR and RTS lines are set, cleared or toggled with
    `set_line_state`, `clr_line_state` and `change_line_state`.
    `get_line_state` reads the lines.

  The module also has:
  - `parse_protocol`, which reads strings such as `"8N1"`;
  - `is_standard_rate`, `port_device_name` and `available_ports`;
  - the types `Parity`, `FlowControl`, `LineState` and `SerialSettings`.
- **`mwkit.getopt`**: `getopt(argv, optstring)` parses short options by
  POSIX rules. It returns the `(letter, arg)` pairs and the remaining words,
  and raises `GetoptError` for an unknown letter.
- **`mwkit.keys`**: `get_key(stream)` returns one waiting character, or `""`.
  On a terminal it does not wait for Enter.
- **`mwkit.process`**: `Shell(flags, cwd, path)` starts a child process.
  `ShellFlags` can redirect its stdin, stdout and stderr.
  - `execute`, `read` (with a timeout in milliseconds), `write`, `wait`,
    `terminate` and `clean` drive the process.
  - `shell_run(cmdline, flags)` runs a command to completion. It returns the
    exit code and, with `READ_STDOUT_ALL`, the output.
  - `tokenize` splits a command line and keeps quoted words together.
- **`mwkit.httpclient`**: `HttpRequest(url, proxy)` sends GET, HEAD, POST,
  streamed POST and multipart POST requests over HTTP/1.0 (`Method`,
  `PostChunk`, `ChunkType`).
  - A 404 status or a broken response raises `HttpClientError`.
  - `parse_url` splits an `http://` URL into host, port and path.
  - `post_file` uploads a file as a multipart form field.
  - `post_file_stream` sends a file as a raw octet stream.
- **`mwkit.player`**: `MediaPlayer(binary, loop_clip)` drives a media player
  in slave mode through its stdin and stdout. The default binary is
  `mplayer`.
  - A background thread plays the `Playlist` one entry after another and
    polls the playback position.
  - `play`, `pause`, `seek`, `command` and `query` control it.
  - `parse_args` picks `--mpbin` and `--mploop` out of a command line.
- **`mwkit.miniweb`**: the server's start-up side.
  - `parse_args` turns a command line into `ServerSettings`. It handles
    `-p`, `-i`, `-r`, `-l`, `-m`, `-M`, `-s`, `-n` and `-d`. `-h` raises
    `UsageError` with the help text.
  - `get_full_path` places the default `htdocs` root next to the program.
  - `describe` builds the start-up banner, and `list_interfaces` lists this
    machine's IPv4 addresses.
  - `substitute` gives the values of page variables.
  - `UploadWriter` stores multipart upload chunks as files under the web
    root.

## Examples

A ring buffer:

```python
from mwkit.fifo import Fifo

fifo = Fifo(8)
fifo.write(b"hello")
print(fifo.items())   # 5
print(fifo.read(3))   # b'hel'
```

Splitting a URL:

```python
from mwkit.httpclient import parse_url

print(parse_url("http://localhost:8080/upload"))   # ('localhost', 8080, '/upload')
```

Checking serial line settings:

```python
from mwkit.serialport import is_standard_rate, parse_protocol

print(is_standard_rate(115200))   # True
print(parse_protocol("8N1"))      # (8, <Parity.NONE: 'N'>, 1)
```

Running a command and reading its output:

```python
from mwkit.process import Shell, ShellFlags

shell = Shell(ShellFlags.REDIRECT_STDOUT, None, None)
shell.execute("/bin/echo hello")
print(shell.read(1000))   # b'hello\n'
shell.wait(-1)
shell.clean()
```

Server settings from a command line:

```python
from mwkit.miniweb import describe, parse_args

settings = parse_args(["miniweb", "-p", "8080", "-r", "/srv/www", "-d"])
print(describe(settings))
```

## Uploading a file from the command line

`mwkit-postfile` posts a file to a URL as a multipart form field named
`file`, then prints the server's reply:

```
mwkit-postfile http://localhost:8080/upload report.txt
```

## What is not included

The package does not contain a web server. `mwkit.miniweb` parses the
server's command line, builds its banner and writes uploaded files. It does
not listen on a port, handle HTTP requests, serve files or list directories.
The `-l` option is only recorded in `ServerSettings.log_file`: no log file is
opened.