"""Translate a generation request into the sd command line."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sdcpp_server.config import Settings
    from sdcpp_server.server.models import GenerationRequest

OUTPUT_PREFIX = "sd_output_"


def parse_size(size: str) -> tuple[str, str] | None:
    """Split ``"WxH"`` into its two parts, or None if it is not exactly two."""
    parts = size.split("x")
    if len(parts) != 2 or not all(parts):  # noqa: PLR2004
        return None
    return parts[0], parts[1]


def format_cfg_scale(value: float) -> str:
    """Render the CFG scale the way the sd CLI prints it (``7.0`` -> ``"7"``)."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def output_path(cache_dir: str | Path, created: int) -> Path:
    """Unique PNG path for one request inside the cache directory."""
    return Path(cache_dir) / f"{OUTPUT_PREFIX}{created}_{uuid.uuid4().hex[:12]}.png"


def build_args(req: GenerationRequest, settings: Settings, output: str | Path) -> list[str]:
    """Build the argument vector for the sd executable.

    Order is fixed: configured extra args, model, prompt, output, steps and
    CFG scale, then seed, negative prompt and size when present.
    """
    args: list[str] = list(settings.args or ())
    args += ["-m", f"{settings.models_dir}/{req.model}"]
    args += ["-p", req.prompt]
    args += ["-o", str(output)]
    args += ["--steps", str(req.steps)]
    args += ["--cfg-scale", format_cfg_scale(req.cfg_scale)]

    if req.seed >= 0:
        args += ["--seed", str(req.seed)]

    if req.negative_prompt is not None:
        args += ["-n", req.negative_prompt]

    size = parse_size(req.size)
    if size is not None:
        args += ["-W", size[0], "-H", size[1]]

    return args
