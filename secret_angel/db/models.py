from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    wishlist = Column(Text, nullable=False, default="", server_default="")

    memberships = relationship("GroupMember", back_populates="participant", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Participant(id={self.id}, name={self.name})>"


class AngelGroup(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True)
    label = Column(String, nullable=False)

    members = relationship(
        "GroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupMember.id",
    )
    assignments = relationship("Assignment", back_populates="group", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<AngelGroup(id={self.id}, label={self.label})>"


class GroupMember(Base):
    __tablename__ = "group_members"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)

    group = relationship("AngelGroup", back_populates="members")
    participant = relationship("Participant", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("group_id", "participant_id", name="uq_group_members_group_participant"),
    )


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    giver_participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    receiver_participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)

    group = relationship("AngelGroup", back_populates="assignments")
    giver = relationship("Participant", foreign_keys=[giver_participant_id])
    receiver = relationship("Participant", foreign_keys=[receiver_participant_id])

    __table_args__ = (
        UniqueConstraint("group_id", "giver_participant_id", name="uq_assignments_group_giver"),
    )

    def __repr__(self) -> str:
        return (
            "<Assignment(group_id={0}, giver={1}, receiver={2})>"
        ).format(self.group_id, self.giver_participant_id, self.receiver_participant_id)
