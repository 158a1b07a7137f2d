"""
Profile models.

User profiles own streams and VODs. Creator profiles are keyed by wallet
address and carry the public avatar shown next to a stream.
"""

from typing import Optional, List

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from livecount.models.base import Base, BaseModel, new_uuid


class UserProfile(BaseModel, Base):
    """
    Account of a platform user (viewer or creator).

    Attributes:
        id: UUID primary key
        username: Unique handle
        display_name: Name shown in the UI
        wallet_address: Wallet the account signs in with
    """

    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    username: Mapped[Optional[str]] = mapped_column(
        String(100),
        unique=True,
        nullable=True,
        comment="Unique handle"
    )

    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    wallet_address: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        comment="Wallet address used for sign-in"
    )

    streams: Mapped[List["Stream"]] = relationship(back_populates="owner")

    def __repr__(self) -> str:
        return f"<UserProfile(id='{self.id}', username='{self.username}')>"


class CreatorProfile(BaseModel, Base):
    """Public creator card, looked up by wallet address."""

    __tablename__ = "creator_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    wallet_address: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True
    )

    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    profile_picture_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<CreatorProfile(wallet='{self.wallet_address}')>"


def get_creator_profile(db, wallet_address: str) -> Optional[CreatorProfile]:
    """Creator profile for a wallet, or None."""
    return db.query(CreatorProfile).filter_by(wallet_address=wallet_address).first()
