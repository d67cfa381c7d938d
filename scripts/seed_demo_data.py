"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import SessionLocal, close_engine
from app.core.enums import RoleEnum
from app.modules.courses.models import Course
from app.modules.identity.models import User

# Fixed ids so bearer tokens minted for local testing keep working across reseeds.
DEMO_ADMIN_ID = UUID("00000000-0000-4000-8000-000000000001")
DEMO_INSTRUCTOR_ID = UUID("00000000-0000-4000-8000-000000000002")
DEMO_STUDENT_ID = UUID("00000000-0000-4000-8000-000000000003")

DEMO_USERS = (
    (DEMO_ADMIN_ID, "demo-admin@lvupedu.dev", "데모 관리자", RoleEnum.ADMIN),
    (DEMO_INSTRUCTOR_ID, "demo-instructor@lvupedu.dev", "데모 강사", RoleEnum.INSTRUCTOR),
    (DEMO_STUDENT_ID, "demo-student@lvupedu.dev", "데모 수강생", RoleEnum.STUDENT),
)

DEMO_COURSES = (
    {
        "title": "[데모] 파이썬 입문",
        "description": "무료로 제공되는 데모 강의입니다.",
        "price": 0,
        "original_price": None,
        "is_free": True,
    },
    {
        "title": "[데모] 실전 웹 개발",
        "description": "결제 흐름 확인용 유료 데모 강의입니다.",
        "price": 50000,
        "original_price": 60000,
        "is_free": False,
    },
)


@dataclass(slots=True)
class SeedStats:
    users_created: int = 0
    users_updated: int = 0
    courses_created: int = 0
    course_ids: list[str] = field(default_factory=list)


async def _ensure_user(
    session: AsyncSession,
    *,
    user_id: UUID,
    email: str,
    name: str,
    role: RoleEnum,
) -> bool:
    user = await session.get(User, user_id)
    if user is None:
        session.add(User(id=user_id, email=email, name=name, role=role))
        await session.flush()
        return True

    user.email = email
    user.name = name
    user.role = role
    await session.flush()
    return False


async def _ensure_course(session: AsyncSession, *, instructor_id: UUID, values: dict) -> tuple[Course, bool]:
    course = await session.scalar(select(Course).where(Course.title == values["title"]))
    if course is not None:
        return course, False

    course = Course(instructor_id=instructor_id, **values)
    session.add(course)
    await session.flush()
    return course, True


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with SessionLocal() as session:
        try:
            for user_id, email, name, role in DEMO_USERS:
                created = await _ensure_user(session, user_id=user_id, email=email, name=name, role=role)
                if created:
                    stats.users_created += 1
                else:
                    stats.users_updated += 1

            for values in DEMO_COURSES:
                course, created = await _ensure_course(session, instructor_id=DEMO_INSTRUCTOR_ID, values=values)
                stats.courses_created += int(created)
                stats.course_ids.append(str(course.id))

            await session.commit()
        except Exception:
            await session.rollback()
            raise

    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed idempotent demo data for LVUP EDU (users, one free and one paid course).",
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Users created: {stats.users_created}")
    print(f"- Users updated: {stats.users_updated}")
    print(f"- Courses created: {stats.courses_created}")
    print(f"- Course ids: {', '.join(stats.course_ids)}")
    print("")
    print("Demo user ids (token subjects, non-production only):")
    print(f"- admin:      {DEMO_ADMIN_ID}")
    print(f"- instructor: {DEMO_INSTRUCTOR_ID}")
    print(f"- student:    {DEMO_STUDENT_ID}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
