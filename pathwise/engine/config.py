"""Aggregate engine configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field

from pathwise.diagnostic.engine import DiagnosticConfig
from pathwise.learner.bkt import BKTParams
from pathwise.memory.fsrs import FSRSParams
from pathwise.planning.config import SessionPlannerConfig
from pathwise.transfer.gate import TransferGateConfig


class EngineConfig(BaseModel):
    """Parameters for every component the engine wires together."""

    bkt: BKTParams = Field(default_factory=BKTParams)
    fsrs: FSRSParams = Field(default_factory=FSRSParams)
    diagnostic: DiagnosticConfig = Field(default_factory=DiagnosticConfig)
    transfer: TransferGateConfig = Field(default_factory=TransferGateConfig)
    planner: SessionPlannerConfig = Field(default_factory=SessionPlannerConfig)
