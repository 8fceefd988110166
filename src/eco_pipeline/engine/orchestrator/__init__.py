"""Pipeline orchestration."""
from eco_pipeline.engine.orchestrator.dispatcher import (
    FULL_SEQUENCE,
    PipelineOrchestrator,
    run_pipeline,
)

__all__ = ["FULL_SEQUENCE", "PipelineOrchestrator", "run_pipeline"]
