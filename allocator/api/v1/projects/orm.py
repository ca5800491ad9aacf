from datetime import datetime
from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from allocator.api.v1.base_model import Base


class Project(Base):
    title: Mapped[str] = mapped_column(String(255), default="")
    start_at: Mapped[datetime]
    end_at: Mapped[datetime]
    version: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        default=datetime.utcnow,
    )

    segments: Mapped[list["Segment"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Segment.position",
    )
