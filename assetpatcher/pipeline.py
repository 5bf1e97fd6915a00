"""Sequential runner for patcher steps.

Steps run strictly one after another: each step's output folder is the
next step's input. A failure stops the pipeline. A step asking for a host
restart stops it too, after recording where to resume.
"""

from __future__ import annotations

from typing import Sequence

from assetpatcher.core.logger import setup_logger
from assetpatcher.core.models import StepOutcome, StepResult
from assetpatcher.core.settings_registry import load_config_file, save_config_file
from assetpatcher.steps.base import PatcherStep

logger = setup_logger(__name__)

PIPELINE_TAB = "pipeline"


def get_resume_step() -> int:
    try:
        return max(0, int(load_config_file(PIPELINE_TAB).get("RESUME_STEP", 0)))
    except (TypeError, ValueError):
        return 0


def save_resume_step(index: int) -> None:
    if not save_config_file(PIPELINE_TAB, {"RESUME_STEP": index}):
        logger.warning(f"Could not persist resume position {index}")


def run_pipeline(steps: Sequence[PatcherStep], resume: bool = False) -> StepOutcome:
    """Run ``steps`` in order and return the outcome that ended the run."""
    start = get_resume_step() if resume else 0
    if start == len(steps) and start:
        # The last step asked for the restart, nothing is left to run
        logger.info("All steps already completed before the restart")
        save_resume_step(0)
        return StepOutcome.success()
    if start > len(steps):
        logger.info(f"Resume position {start} is past the last step, starting over")
        start = 0
    if start:
        logger.info(f"Resuming pipeline at step {start + 1}/{len(steps)}")

    for index in range(start, len(steps)):
        step = steps[index]
        logger.info(f"Step {index + 1}/{len(steps)}: {step.name}")
        try:
            outcome = step.run()
        except Exception as e:
            logger.error_trace(f"Step {step.name} raised: {e}")
            outcome = StepOutcome.failure(f"Unexpected error in {step.name}: {e}", e)

        if outcome.result == StepResult.FAILURE:
            logger.error(f"Step {step.name} failed: {outcome.cause}")
            save_resume_step(0)
            return outcome

        if outcome.result == StepResult.RESTART_HOST:
            logger.info(f"Step {step.name} requested a host restart; resume from step {index + 2}")
            save_resume_step(index + 1)
            return outcome

    save_resume_step(0)
    logger.info("Pipeline completed")
    return StepOutcome.success()
