from datetime import datetime
from sqlalchemy import ForeignKey, String, Float
from sqlalchemy.orm import Mapped, mapped_column, relationship

from allocator.api.v1.base_model import Base


class Segment(Base):
    project_iid: Mapped[int] = mapped_column(ForeignKey("projects.iid"))
    position: Mapped[int] = mapped_column(default=0)
    title: Mapped[str] = mapped_column(String(255), default="")
    difficulty: Mapped[str | None] = mapped_column(String(20), nullable=True)
    weight: Mapped[float] = mapped_column(Float, default=1.0)
    duration_minutes: Mapped[int | None] = mapped_column(nullable=True)
    start_at: Mapped[datetime | None] = mapped_column(nullable=True)
    end_at: Mapped[datetime | None] = mapped_column(nullable=True)

    project: Mapped["Project"] = relationship(back_populates="segments")
