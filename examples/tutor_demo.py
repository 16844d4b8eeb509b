"""Minimal demonstration of the tutoring router."""

from tutor_core import TutorSession, build_default_router
from tutor_core.domain.models import Subject

if __name__ == "__main__":
    router = build_default_router()
    router.add_listener(lambda outcome: print(f"[{outcome.status.value}]", outcome.message or ""))
    session = TutorSession(router, subject=Subject.MATH)
    question = "Explain the quadratic formula and derive it step by step."
    reply = session.ask(question)
    print("User:", question)
    print("Tutor:", reply)
