"""EduFam grading engine: the lifecycle of school grades, from a teacher's
bulk upload through principal approval to release, inside strict school
boundaries."""

from pathlib import Path

__version__ = (Path(__file__).parent.parent / "VERSION.txt").read_text(encoding="utf8").strip()
