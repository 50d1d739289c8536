"""Turns a validated composition into the renderer's input file."""

import json
import logging
import os
import random
import uuid
from typing import Any, Dict, Optional

from wendy.config import settings
from wendy.errors import TemplateError
from wendy.storage.artifacts import TEMPLATE_EXT
from wendy.validation.composition import PERCUSSIVE, Composition

logger = logging.getLogger(__name__)


def pick_sample(kind: str, samples_dir: str) -> str:
    """Pick a random sample file for a percussive voice."""
    length = random.choice(["long", "short"])
    place = os.path.abspath(os.path.join(samples_dir, kind, length))
    try:
        files = sorted(os.listdir(place))
    except OSError as exc:
        raise TemplateError(f"No samples available at {place}: {exc}") from exc
    if not files:
        raise TemplateError(f"No samples available at {place}")
    return os.path.join(place, random.choice(files))


def build_template(composition: Composition, samples_dir: Optional[str] = None) -> Dict[str, Any]:
    """Swap each part's oscillator for what the renderer understands.

    Percussive voices become a sample filepath, noise renders as a pulse.
    """
    samples_dir = samples_dir or settings.samples_dir
    parts = []
    for part in composition.parts:
        osc = part.sound.base_osc
        sound: Dict[str, Any] = {
            "duty": list(part.sound.duty),
            "minFreq": part.sound.min_freq,
            "maxFreq": part.sound.max_freq,
        }
        if osc in PERCUSSIVE:
            sound["filepath"] = pick_sample(osc, samples_dir)
        else:
            sound["osc"] = "pulse" if osc == "noise" else osc
        parts.append({
            "sound": sound,
            "motes": [[list(mote) for mote in line] for line in part.motes],
        })
    return {"conf": composition.conf.model_dump(), "parts": parts}


def write_template(
    composition: Composition,
    tmp_dir: Optional[str] = None,
    samples_dir: Optional[str] = None,
) -> str:
    """Write the renderer template to a fresh temp file and return its path."""
    tmp_dir = tmp_dir or settings.tmp_dir
    filepath = os.path.abspath(os.path.join(tmp_dir, uuid.uuid4().hex + TEMPLATE_EXT))
    template = build_template(composition, samples_dir)
    try:
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(template, f)
    except OSError as exc:
        logger.error("Unexpected error saving template to %s: %s", filepath, exc)
        raise TemplateError("Unable to create template") from exc
    return filepath
