"""
Configuration settings for the pathwise command line.

Uses Pydantic Settings for environment variable management with .env file
support. The engine itself never reads settings; the CLI turns them into an
`EngineConfig` and passes it in.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pathwise.diagnostic.engine import DiagnosticConfig
from pathwise.engine.config import EngineConfig
from pathwise.learner.bkt import BKTParams
from pathwise.memory.fsrs import FSRSParams
from pathwise.planning.config import SessionPlannerConfig
from pathwise.transfer.gate import TransferGateConfig


class Settings(BaseSettings):
    """Settings loaded from PATHWISE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PATHWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path (rotated at 10 MB)",
    )

    # ========================================
    # Learner Model (BKT)
    # ========================================
    bkt_p_init: float = Field(default=0.3, description="Prior probability of mastery")
    bkt_p_learn: float = Field(default=0.1, description="Probability of learning per attempt")
    bkt_p_slip: float = Field(default=0.1, description="Probability of a careless error")
    bkt_p_guess: float = Field(default=0.2, description="Probability of a lucky guess")

    # ========================================
    # Memory Scheduler (FSRS)
    # ========================================
    fsrs_requested_retention: float = Field(
        default=0.9,
        description="Target recall probability when a review falls due",
    )
    fsrs_max_interval_days: float = Field(
        default=365,
        description="Upper bound on a review interval in days",
    )
    fsrs_initial_difficulty: float = Field(
        default=0.5,
        description="Difficulty of a never-reviewed skill (0.1-0.9)",
    )
    fsrs_grade_by_response_time: bool = Field(
        default=False,
        description="Grade correct answers Hard/Good/Easy by response time",
    )

    # ========================================
    # Session Planner
    # ========================================
    planner_target_items: int = Field(default=20, description="Actions per planned session")
    planner_mastery_threshold: float = Field(
        default=0.85,
        description="pMastery at which a skill counts as mastered",
    )

    # ========================================
    # Transfer Gate
    # ========================================
    transfer_require_near: bool = Field(default=True, description="Require near transfer tests")
    transfer_require_far: bool = Field(default=False, description="Require far transfer tests")

    # ========================================
    # Diagnostic
    # ========================================
    diagnostic_mastery_threshold: float = Field(
        default=0.7,
        description="Estimate at which a diagnosed skill boosts its prerequisites",
    )
    diagnostic_max_items: int = Field(default=20, description="Items per diagnostic")

    def engine_config(self) -> EngineConfig:
        """Assemble component parameters from the flat settings."""
        return EngineConfig(
            bkt=BKTParams(
                p_init=self.bkt_p_init,
                p_learn=self.bkt_p_learn,
                p_slip=self.bkt_p_slip,
                p_guess=self.bkt_p_guess,
            ),
            fsrs=FSRSParams(
                requested_retention=self.fsrs_requested_retention,
                max_interval_days=self.fsrs_max_interval_days,
                initial_difficulty=self.fsrs_initial_difficulty,
                grade_by_response_time=self.fsrs_grade_by_response_time,
            ),
            diagnostic=DiagnosticConfig(mastery_threshold=self.diagnostic_mastery_threshold),
            transfer=TransferGateConfig(
                require_near_transfer=self.transfer_require_near,
                require_far_transfer=self.transfer_require_far,
            ),
            planner=SessionPlannerConfig(
                target_items=self.planner_target_items,
                mastery_threshold=self.planner_mastery_threshold,
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
