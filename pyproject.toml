[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mwkit"
version = "0.1.0"
description = "Byte FIFOs, timers, serial ports, child processes, an HTTP/1.0 upload client, media player control and web server start-up settings"
requires-python = ">=3.10"
keywords = [
    "http",
    "multipart",
    "upload",
    "serial",
    "fifo",
    "ring buffer",
    "getopt",
    "subprocess",
    "mplayer",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Terminals :: Serial",
    "Topic :: Multimedia :: Sound/Audio :: Players",
]
dependencies = [
    "pyserial",
    "psutil",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
mwkit-postfile = "mwkit.httpclient:main"

[tool.hatch.build.targets.wheel]
packages = ["mwkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
