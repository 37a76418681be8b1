from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.attendance_engine.attendance_engine.attendance.ledger import AttendanceLedger
from src.attendance_engine.attendance_engine.attendance.memory_attendance_repository import InMemoryAttendanceRepository
from src.attendance_engine.attendance_engine.attendance.service import AttendanceService
from src.attendance_engine.attendance_engine.core.enums import RequestStatus
from src.attendance_engine.attendance_engine.face.verifier import FaceMatch
from src.attendance_engine.attendance_engine.leaves.model import LeaveRequest, LeaveType
from src.attendance_engine.attendance_engine.leaves.service import LeaveService
from src.attendance_engine.attendance_engine.locations.model import Location
from src.attendance_engine.attendance_engine.settings.service import SettingsService
from src.attendance_engine.attendance_engine.students.model import Student
from src.attendance_engine.attendance_engine.summaries.service import SummaryService
from src.attendance_engine.attendance_engine.sweeper.service import ReconciliationSweeper

# Wednesday
TODAY = date(2026, 10, 14)
TEMPLATE = [0.1] * 128
SCHOOL = Location(location_id=1, name="Main gate", latitude=-6.2, longitude=106.8, radius_m=50)


class FixedClock:
    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current


class FakeStudentsRepo:
    def __init__(self):
        self._students: dict[int, Student] = {}

    def add(self, student_id, *, class_id=10, class_name="XII-A", template=TEMPLATE, is_active=True, full_name=None):
        self._students[student_id] = Student(
            student_id=student_id,
            full_name=full_name or f"Student {student_id}",
            class_id=class_id,
            face_template=template,
            is_active=is_active,
            class_name=class_name,
        )
        return self._students[student_id]

    def get_by_id(self, student_id):
        return self._students.get(int(student_id))

    def list_active(self):
        return [s for s in self._students.values() if s.is_active]

    def save_face_template(self, student_id, template):
        s = self._students.get(int(student_id))
        if not s:
            return False
        self._students[s.student_id] = replace(s, face_template=list(template))
        return True


class FakeLocationsRepo:
    def __init__(self):
        self.by_class: dict[int, list[Location]] = {10: [SCHOOL]}

    def list_for_class(self, class_id):
        return list(self.by_class.get(int(class_id), []))


class FakeLeavesRepo:
    def __init__(self):
        self.types = {
            1: LeaveType(1, "Sakit"),
            2: LeaveType(2, "Izin"),
            3: LeaveType(3, "Dispensasi", requires_evidence=True),
        }
        self.requests: dict[int, LeaveRequest] = {}
        self._next_id = 1
        self.fail_decide_for: set[int] = set()

    def get_type(self, leave_type_id):
        return self.types.get(int(leave_type_id))

    def create(self, *, student_id, leave_type_id, start_date, end_date, reason, evidence_ref=None):
        rid = self._next_id
        self._next_id += 1
        self.requests[rid] = LeaveRequest(
            request_id=rid,
            student_id=int(student_id),
            leave_type=self.types[int(leave_type_id)],
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            status=RequestStatus.PENDING,
            created_at=datetime(2026, 10, 1, 7, 0),
            evidence_ref=evidence_ref,
        )
        return rid

    def add(self, *, student_id, leave_type_id, start_date, end_date, reason="x", status=RequestStatus.PENDING):
        rid = self.create(
            student_id=student_id, leave_type_id=leave_type_id, start_date=start_date, end_date=end_date, reason=reason
        )
        self.requests[rid] = replace(self.requests[rid], status=status)
        return rid

    def get(self, request_id):
        return self.requests.get(int(request_id))

    def decide(self, *, request_id, status, decided_by, decided_at, admin_note=None):
        if int(request_id) in self.fail_decide_for:
            raise RuntimeError("storage hiccup")
        req = self.requests.get(int(request_id))
        if not req or req.status != RequestStatus.PENDING:
            return False
        self.requests[req.request_id] = replace(
            req, status=status, decided_by=decided_by, decided_at=decided_at, admin_note=admin_note
        )
        return True

    def list_pending(self, *, student_id=None, limit=500):
        rows = [
            r for r in self.requests.values()
            if r.status == RequestStatus.PENDING and (student_id is None or r.student_id == int(student_id))
        ]
        return rows[:limit]

    def list_pending_ended_before(self, day):
        return [r for r in self.requests.values() if r.status == RequestStatus.PENDING and r.end_date < day]

    def list_approved_covering(self, day):
        return [r for r in self.requests.values() if r.status == RequestStatus.APPROVED and r.covers(day)]

    def find_approved_covering(self, student_id, day):
        for r in self.list_approved_covering(day):
            if r.student_id == int(student_id):
                return r
        return None

    def list_overlapping(self, *, student_id, start_date, end_date):
        return [
            r for r in self.requests.values()
            if r.student_id == int(student_id)
            and r.start_date <= end_date
            and r.end_date >= start_date
        ]


class FakeSettingsRepo:
    def __init__(self, values: Optional[dict] = None):
        self.values = dict(values or {})

    def get_all(self):
        return dict(self.values)

    def upsert(self, *, key, value):
        self.values[key] = value


class FakeVerifier:
    def __init__(self, *, is_match=True, score=0.8, error: Optional[BaseException] = None):
        self.result = FaceMatch(is_match=is_match, score=score)
        self.error = error
        self.calls: list[str] = []

    def verify(self, probe_image_path, template):
        self.calls.append(probe_image_path)
        if self.error is not None:
            raise self.error
        return self.result


class RecordingNotifier:
    def __init__(self, *, fail=False):
        self.events: list[tuple[str, dict]] = []
        self.fail = fail

    def emit(self, event, payload):
        if self.fail:
            raise ConnectionError("notification channel down")
        self.events.append((event, dict(payload)))


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 10, 14, 7, 0))


@pytest.fixture
def students():
    repo = FakeStudentsRepo()
    repo.add(1)
    return repo


@pytest.fixture
def locations():
    return FakeLocationsRepo()


@pytest.fixture
def leaves():
    return FakeLeavesRepo()


@pytest.fixture
def settings_repo():
    return FakeSettingsRepo()


@pytest.fixture
def settings_service(settings_repo):
    return SettingsService(settings_repo)


@pytest.fixture
def attendance_repo(clock):
    return InMemoryAttendanceRepository(clock=clock.now)


@pytest.fixture
def ledger(attendance_repo):
    return AttendanceLedger(attendance_repo)


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def attendance_service(ledger, students, locations, leaves, settings_service, verifier, clock, notifier):
    return AttendanceService(
        ledger,
        students,
        locations,
        leaves,
        settings_service,
        lambda settings: verifier,
        clock=clock,
        notifier=notifier,
    )


@pytest.fixture
def leave_service(leaves, students, ledger, clock, notifier):
    return LeaveService(leaves, students, ledger, clock=clock, notifier=notifier)


@pytest.fixture
def summary_service(attendance_repo, students):
    return SummaryService(attendance_repo, students)


@pytest.fixture
def sweeper(ledger, students, leaves, summary_service, clock, notifier):
    return ReconciliationSweeper(ledger, students, leaves, summary_service, clock=clock, notifier=notifier)


@pytest.fixture
def probe(tmp_path):
    path = tmp_path / "probe.jpg"
    path.write_bytes(b"\xff\xd8fake-jpeg")
    return path
