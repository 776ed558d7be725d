from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.enrollment import CourseMember, MemberRole
from core.config import settings

class EnrollmentService:
    """
    Answers "may this user take / grade quizzes of this course".

    Backed by the course_members table; deployments with an external
    enrollment system can pass any object exposing the same two coroutines.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _has_role(self, user_id: int, course_id: int, role: MemberRole) -> bool:
        result = await self.db.execute(
            select(CourseMember.id).filter(
                CourseMember.user_id == user_id,
                CourseMember.course_id == course_id,
                CourseMember.role == role,
                CourseMember.is_active == True,
            )
        )
        return result.first() is not None

    async def is_enrolled(self, learner_id: int, course_id: int) -> bool:
        return await self._has_role(learner_id, course_id, MemberRole.LEARNER)

    async def is_grader(self, user_id: int, course_id: int) -> bool:
        if settings.ADMIN_ID and user_id == settings.ADMIN_ID:
            return True
        return await self._has_role(user_id, course_id, MemberRole.GRADER)
