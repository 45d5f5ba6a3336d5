"""
Seed the sandbox fee backend with a demo school: a few classrooms and students with assigned fees.

Usage:
  python -m feeledger.scripts.seed_sandbox
  python -m feeledger.scripts.seed_sandbox --school demo-school --students 8
"""

import argparse
import asyncio
from decimal import Decimal

from feeledger.db.session import AsyncSessionLocal, create_all
from feeledger.sandbox import service

DEMO_CLASSES = [
    ("1st", "A", Decimal("12000")),
    ("1st", "B", Decimal("12000")),
    ("5th", "A", Decimal("18000")),
    ("10th", "A", Decimal("25000")),
]

DEMO_NAMES = [
    "Aarav Sharma", "Diya Patel", "Kabir Singh", "Meera Iyer",
    "Rohan Gupta", "Sara Khan", "Vihaan Rao", "Anaya Das",
]


async def seed(school_id: str, students_per_class: int) -> None:
    await create_all()
    async with AsyncSessionLocal() as session:
        names = iter(DEMO_NAMES * (len(DEMO_CLASSES) * students_per_class))
        for class_name, division, fee in DEMO_CLASSES:
            classroom = await service.create_classroom(session, school_id, class_name, division, fee)
            for roll in range(1, students_per_class + 1):
                await service.create_student(
                    session, school_id, classroom.id, next(names), roll_no=str(roll)
                )
            print(f"  {class_name} {division}: {students_per_class} students, fee {fee}")
    print(f"Seeded school {school_id}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the sandbox fee backend")
    parser.add_argument("--school", type=str, default="demo-school", help="School id to seed")
    parser.add_argument("--students", type=int, default=2, help="Students per class")
    args = parser.parse_args()
    asyncio.run(seed(args.school, args.students))


if __name__ == "__main__":
    main()
