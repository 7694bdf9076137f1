"""Shared fixtures: a fake cwebp install and an app wired to it."""

import stat
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from webp_service.config import Settings
from webp_service.conversion.encoder import CommandResult
from webp_service.main import create_app

# Stands in for cwebp: writes "RIFF-q<quality>-" followed by the input bytes.
# Inputs containing FAIL exit non-zero, inputs containing HANG never finish.
FAKE_CWEBP = """#!/bin/sh
if [ "$1" = "-version" ]; then
    echo "1.3.2"
    exit 0
fi
quality=""
input=""
output=""
while [ $# -gt 0 ]; do
    case "$1" in
        -q) quality="$2"; shift 2 ;;
        -o) output="$2"; shift 2 ;;
        *) input="$1"; shift ;;
    esac
done
if grep -q FAIL "$input"; then
    echo "Could not process file $input" >&2
    echo "Error! Cannot read input picture file '$input'"
    exit 255
fi
if grep -q HANG "$input"; then
    exec sleep 30
fi
printf 'RIFF-q%s-' "$quality" > "$output"
cat "$input" >> "$output"
"""


class FakeRunner:
    """Records invocations instead of starting a process."""

    def __init__(self, returncode=0, output="", write_output=True, exc=None):
        self.returncode = returncode
        self.output = output
        self.write_output = write_output
        self.exc = exc
        self.calls = []

    def __call__(self, args, timeout=None):
        args = list(args)
        self.calls.append((args, timeout))
        if self.exc is not None:
            raise self.exc
        if self.write_output and self.returncode == 0 and "-o" in args:
            Path(args[args.index("-o") + 1]).write_bytes(b"RIFFfakeWEBP")
        return CommandResult(returncode=self.returncode, output=self.output)


def write_executable(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def libwebp_root(tmp_path):
    if sys.platform == "win32":
        pytest.skip("fake cwebp is a POSIX shell script")
    root = tmp_path / "libwebp"
    write_executable(root / "bin" / "cwebp", FAKE_CWEBP)
    return root


@pytest.fixture
def work_root(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def settings(libwebp_root, work_root):
    return Settings(
        libwebp_path=str(libwebp_root),
        temp_dir=str(work_root),
        encoder_timeout=10,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def anyio_backend():
    return "asyncio"
