import enum
from sqlalchemy import Column, Integer, BigInteger, Boolean, Enum, UniqueConstraint
from models.base import Base, TimestampMixin

class MemberRole(str, enum.Enum):
    LEARNER = "LEARNER"
    GRADER = "GRADER"

class CourseMember(Base, TimestampMixin):
    __tablename__ = "course_members"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(BigInteger, index=True, nullable=False)
    course_id = Column(Integer, index=True, nullable=False)
    role = Column(Enum(MemberRole, native_enum=False, length=20), default=MemberRole.LEARNER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "role", name="uq_course_members_user_course_role"),
    )
