"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
import textwrap

import pytest

from sdcpp_server.config import Settings

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01"
    b"\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde\x00"
    b"\x00\x00\x0cIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00"
    b"\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)

# Stands in for the sd binary. Behaviour is picked by the prompt:
#   "fail"    -> write to stderr and exit 3
#   "no-file" -> exit 0 without writing the output
#   anything else -> write PNG_BYTES to the -o path
# argv is recorded next to the output for inspection.
FAKE_SD = textwrap.dedent(
    f"""
    import json
    import sys
    from pathlib import Path

    argv = sys.argv[1:]
    prompt = argv[argv.index("-p") + 1]
    out = Path(argv[argv.index("-o") + 1])
    (out.parent / "argv.json").write_text(json.dumps(argv))
    if prompt == "fail":
        sys.stderr.write("error: model not found\\n")
        sys.exit(3)
    if prompt != "no-file":
        out.write_bytes({PNG_BYTES!r})
    print("done")
    """
)


@pytest.fixture
def fake_sd(tmp_path):
    """Write the fake sd script and return its path."""
    script = tmp_path / "fake_sd.py"
    script.write_text(FAKE_SD)
    return script


@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def settings(fake_sd, cache_dir, tmp_path) -> Settings:
    """Settings that run the fake sd script through the current interpreter."""
    return Settings(
        port=8080,
        token="test-token",
        binary_path=sys.executable,
        args=(str(fake_sd),),
        models_dir=str(tmp_path / "models"),
        cache_dir=str(cache_dir),
    )


@pytest.fixture
def png_bytes() -> bytes:
    """The image the fake sd script writes."""
    return PNG_BYTES
