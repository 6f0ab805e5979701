"""
Seed script for the timetable generator development database.
Run with: python -m scripts.seed_demo_data [--generate]
"""

import sys
from datetime import date
from sqlalchemy import text
from app.db.database import Base, SessionLocal, engine
from app.db.models.academic_sessions import AcademicSessions, SessionStatus
from app.db.models.classes import Classes
from app.db.models.sections import Sections
from app.db.models.subjects import Subjects
from app.db.models.teachers import Teachers
from app.db.models.teacher_subjects import TeacherSubjects
from app.db.models.class_subjects import ClassSubjects
from app.db.models.timetable_templates import TimetableTemplates
from app.services.scheduling import generate_timetable, TimetableGenerationError


def clear_tables(db):
    """Delete all rows, children first."""
    print("Clearing tables...")

    tables_to_clear = [
        "timetable_slots",
        "class_subjects",
        "teacher_subjects",
        "timetable_templates",
        "sections",
        "classes",
        "subjects",
        "teachers",
        "academic_sessions",
    ]

    for table in tables_to_clear:
        db.execute(text(f"DELETE FROM {table};"))

    db.commit()
    print("All tables cleared.")


def seed_session(db) -> AcademicSessions:
    print("Seeding academic session...")
    session = AcademicSessions(
        name="2026-27",
        status=SessionStatus.ACTIVE,
        weekly_off_days=[0],  # Sunday
        start_date=date(2026, 6, 1),
        end_date=date(2027, 3, 31),
        holidays=["2026-08-15", "2026-10-02", "2026-10-20", "2026-10-21", "2026-12-25", "2027-01-26"],
    )
    db.add(session)
    db.flush()
    return session


def seed_template(db) -> TimetableTemplates:
    print("Seeding timetable template...")
    template = TimetableTemplates(
        name="Standard 8-period day",
        total_slots_per_day=8,
        start_time="08:00",
        slot_duration_minutes=45,
        break_slots=[3],
        lunch_slot=6,
        generation_rules={
            "max_consecutive_hours_teacher": 4,
            "max_periods_per_subject_per_day": 2,
            "max_periods_per_teacher_per_day": 6,
            "allow_double_periods": False,
            "balance_subject_distribution": True,
        },
        is_default=True,
    )
    db.add(template)
    db.flush()
    return template


def seed_subjects(db) -> dict[str, Subjects]:
    print("Seeding subjects...")
    subjects = {
        code: Subjects(name=name, code=code)
        for code, name in [
            ("MATH", "Mathematics"),
            ("ENG", "English"),
            ("SCI", "Science"),
            ("HIST", "History"),
            ("GEO", "Geography"),
            ("ART", "Art"),
        ]
    }
    db.add_all(subjects.values())
    db.flush()
    return subjects


def seed_teachers(db, subjects: dict[str, Subjects]) -> list[Teachers]:
    print("Seeding teachers...")
    # name -> subject codes taught
    roster = [
        ("Priya Nair", ["MATH"]),
        ("Tom Okafor", ["MATH", "SCI"]),
        ("Helen Brooks", ["ENG"]),
        ("Marco Rossi", ["ENG", "HIST"]),
        ("Aiko Tanaka", ["SCI"]),
        ("Sam Patel", ["HIST", "GEO"]),
        ("Lena Vogel", ["ART", "GEO"]),
    ]

    teachers = []
    for name, codes in roster:
        teacher = Teachers(name=name)
        db.add(teacher)
        db.flush()
        for code in codes:
            db.add(TeacherSubjects(teacher_id=teacher.id, subject_id=subjects[code].id))
        teachers.append(teacher)
    db.flush()
    return teachers


def seed_classes(db, session, subjects: dict[str, Subjects]) -> list[Sections]:
    print("Seeding classes, sections and curriculum...")
    # periods per week per subject
    curriculum = {
        "Grade 6": {"MATH": 6, "ENG": 6, "SCI": 5, "HIST": 3, "GEO": 3, "ART": 2},
        "Grade 7": {"MATH": 6, "ENG": 5, "SCI": 6, "HIST": 3, "GEO": 3, "ART": 2},
    }
    preferences = {
        "MATH": {"priority": 8, "preferred_slots": ["morning"]},
        "ART": {"avoid_slots": [1], "prefer_consecutive": True},
    }

    sections = []
    for class_name, periods in curriculum.items():
        grade = Classes(name=class_name)
        db.add(grade)
        db.flush()

        for section_name in ("A", "B"):
            section = Sections(class_id=grade.id, name=section_name)
            db.add(section)
            sections.append(section)

        for code, count in periods.items():
            db.add(ClassSubjects(
                session_id=session.id,
                class_id=grade.id,
                subject_id=subjects[code].id,
                periods_per_week=count,
                scheduling_preferences=preferences.get(code),
            ))
    db.flush()
    return sections


def generate_all(db, session, sections):
    print("\nGenerating timetables...")
    for section in sections:
        try:
            result = generate_timetable(db, section.id, session.id)
        except TimetableGenerationError as e:
            print(f"  Section {section.id}: {e.code} {e.message}")
            continue
        print(f"  Section {section.id}: {len(result.new_assignments)} periods, {len(result.warnings)} warnings")
        for warning in result.warnings:
            print(f"    - [{warning.kind.value}] {warning.message}")


def main():
    """Main seed function."""
    print("\n" + "="*50)
    print("Timetable Demo Seeder")
    print("="*50 + "\n")

    # Confirmation prompt
    response = input("This will DELETE ALL EXISTING TIMETABLE DATA. Continue? (yes/no): ")
    if response.lower() != "yes":
        print("Aborted.")
        sys.exit(0)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        clear_tables(db)

        session = seed_session(db)
        seed_template(db)
        subjects = seed_subjects(db)
        seed_teachers(db, subjects)
        sections = seed_classes(db, session, subjects)
        db.commit()

        if "--generate" in sys.argv:
            generate_all(db, session, sections)

        print("\n" + "="*50)
        print("Seeding complete!")
        print("="*50)
        print(f"\nSession id: {session.id}")
        print(f"Sections:   {[s.id for s in sections]}")
        print("="*50 + "\n")

    except Exception as e:
        db.rollback()
        print(f"\nError during seeding: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
