"""
Client model (tenant-scoped policyholder).
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from policy_ledger.models.base import Base, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from policy_ledger.models.policy import Policy


class Client(Base, TimestampMixin, SoftDeleteMixin):
    """
    A policyholder owned by a tenant.

    Client management lives outside this service; the row exists so that
    policy creation can verify the client belongs to the calling tenant.
    """

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # Relationships
    policies: Mapped[List["Policy"]] = relationship(
        "Policy",
        back_populates="client",
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, tenant_id='{self.tenant_id}')>"
