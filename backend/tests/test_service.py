"""Tests for ConversionService against a fake runner and a fake cwebp binary."""

import dataclasses
import subprocess

import pytest

from conftest import FakeRunner
from webp_service.conversion.models import (
    ConversionFailure,
    ConversionRequest,
    ConversionSuccess,
    ErrorKind,
)
from webp_service.conversion.service import ConversionService


@pytest.fixture
def request_paths(tmp_path):
    source = tmp_path / "photo.png"
    source.write_bytes(b"PNGDATA")
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    return source, out_dir / "photo.webp"


def test_build_command_argument_order(tmp_path):
    request = ConversionRequest(tmp_path / "a.png", tmp_path / "a.webp", quality=75)
    assert ConversionService.build_command("/opt/cwebp", request) == [
        "/opt/cwebp", "-q", "75", str(tmp_path / "a.png"), "-o", str(tmp_path / "a.webp"),
    ]


def test_convert_success_with_fake_runner(settings, request_paths):
    source, destination = request_paths
    runner = FakeRunner()
    result = ConversionService(settings, runner=runner).convert(ConversionRequest(source, destination))

    assert isinstance(result, ConversionSuccess)
    assert result.ok
    assert result.output_path == destination
    args, timeout = runner.calls[0]
    assert args[1:3] == ["-q", "80"]
    assert timeout == settings.encoder_timeout


def test_convert_with_real_process(settings, request_paths):
    source, destination = request_paths
    result = ConversionService(settings).convert(ConversionRequest(source, destination, quality=42))

    assert result.ok
    assert destination.read_bytes() == b"RIFF-q42-PNGDATA"


def test_non_zero_exit_carries_output(settings, request_paths):
    source, destination = request_paths
    source.write_bytes(b"FAIL")
    result = ConversionService(settings).convert(ConversionRequest(source, destination))

    assert isinstance(result, ConversionFailure)
    assert not result.ok
    assert result.kind is ErrorKind.ENCODER_FAILED
    assert "Could not process file" in result.details
    assert "Cannot read input picture" in result.details


def test_launch_failure_is_wrapped(settings, request_paths):
    source, destination = request_paths
    runner = FakeRunner(exc=PermissionError("Permission denied"))
    result = ConversionService(settings, runner=runner).convert(ConversionRequest(source, destination))

    assert result.kind is ErrorKind.ENCODER_FAILED
    assert result.details == "Permission denied"


def test_timeout_kills_encoder(settings, request_paths):
    source, destination = request_paths
    source.write_bytes(b"HANG")
    service = ConversionService(dataclasses.replace(settings, encoder_timeout=0.5))
    result = service.convert(ConversionRequest(source, destination))

    assert result.kind is ErrorKind.ENCODER_TIMEOUT
    assert result.kind.status_code == 504
    assert "timed out" in result.reason


def test_timeout_from_runner(settings, request_paths):
    source, destination = request_paths
    runner = FakeRunner(exc=subprocess.TimeoutExpired(["cwebp"], 1, output=b"partial"))
    result = ConversionService(settings, runner=runner).convert(ConversionRequest(source, destination))

    assert result.kind is ErrorKind.ENCODER_TIMEOUT
    assert result.details == "partial"


def test_missing_output_file(settings, request_paths):
    source, destination = request_paths
    runner = FakeRunner(write_output=False)
    result = ConversionService(settings, runner=runner).convert(ConversionRequest(source, destination))

    assert result.kind is ErrorKind.OUTPUT_UNREADABLE


def test_unresolved_encoder_never_runs(settings, request_paths, tmp_path):
    source, destination = request_paths
    runner = FakeRunner()
    broken = dataclasses.replace(settings, libwebp_path=str(tmp_path / "nowhere"))
    result = ConversionService(broken, runner=runner).convert(ConversionRequest(source, destination))

    assert result.kind is ErrorKind.CONFIGURATION_UNRESOLVED
    assert "not found" in result.reason
    assert runner.calls == []


def test_failure_converts_to_error():
    error = ConversionFailure(ErrorKind.ENCODER_FAILED, "Failed to convert image", "boom").to_error()
    assert error.status_code == 500
    assert error.to_dict() == {"error": "Failed to convert image", "details": "boom"}
