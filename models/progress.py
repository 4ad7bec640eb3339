"""Progress snapshot model passed from the pipeline to its caller."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from models.report import AgentReport


class Stage(str, Enum):
    """Pipeline stage identifiers.

    Only WRITING is currently emitted: it means "discovery is done, the
    writing stage has begun, here is what we know so far".
    """

    DISCOVERY = "discovery"
    WRITING = "writing"


class ProgressSnapshot(BaseModel):
    """One progress notification.

    Attributes:
        stage: Stage that has just begun
        partial_report: Report fields known so far (body empty)
    """

    model_config = ConfigDict(frozen=True)

    stage: Stage = Field(description="Stage that has just begun")
    partial_report: AgentReport | None = Field(default=None, description="Partial report snapshot")
