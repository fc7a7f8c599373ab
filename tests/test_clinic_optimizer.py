"""Unit tests for the clinic_optimizer package.

These tests verify the greedy placement engine in isolation, without the API layer.
"""

import random
from collections import defaultdict

import pytest

from clinic_optimizer import (
    Doctor,
    ManualAppointment,
    Patient,
    ScheduledTask,
    SchedulerSettings,
    Task,
    UnhandledReason,
    doctor_timeline,
    generate_schedule,
    patient_journey,
    summarize_result,
)

SESSION = 270


@pytest.fixture
def consult():
    return Task(id="T", name="Consultation", doctor_duration=30, patient_duration=30)


@pytest.fixture
def doctor():
    return Doctor(id="D1", name="Dr. One", can_do=("T",))


def _assert_no_double_booking(result, settings, session_duration):
    for item in result.scheduled:
        assert item.start_time >= 0
        assert item.doctor_end_time <= session_duration
        assert item.patient_end_time <= session_duration

    doctor_busy = defaultdict(list)
    patient_busy = defaultdict(list)
    for item in result.scheduled:
        doctor_busy[item.doctor_id].append((item.start_time, item.doctor_end_time))
        patient_busy[item.patient_id].append((item.start_time, item.patient_end_time))

    for busy, gap in (
        (doctor_busy, settings.doctor_break_minutes),
        (patient_busy, settings.patient_break_minutes),
    ):
        for owner_id, intervals in busy.items():
            intervals.sort()
            for (_, prev_end), (next_start, _) in zip(intervals, intervals[1:]):
                assert prev_end + gap <= next_start, (owner_id, intervals)


class TestGreedyScenarios:
    """Reference scenarios for the greedy engine."""

    def test_single_patient_single_doctor(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [doctor],
            [Patient(id="P1", name="Alice", needs=("T",))],
            session_duration=SESSION,
        )
        assert result.unhandled == []
        assert result.scheduled == [
            ScheduledTask(
                patient_id="P1",
                doctor_id="D1",
                task_id="T",
                start_time=0,
                doctor_end_time=30,
                patient_end_time=30,
            )
        ]
        assert result.status == "SCHEDULED"
        assert result.success is True

    def test_second_patient_waits_for_doctor(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [doctor],
            [
                Patient(id="P1", name="Alice", needs=("T",)),
                Patient(id="P2", name="Bob", needs=("T",)),
            ],
            session_duration=SESSION,
        )
        assert [(s.patient_id, s.start_time) for s in result.scheduled] == [
            ("P1", 0),
            ("P2", 30),
        ]

    def test_doctor_break_delays_next_task(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(doctor_break_minutes=10),
            [consult],
            [doctor],
            [Patient(id="P1", name="Alice", needs=("T", "T"))],
            session_duration=SESSION,
        )
        assert [s.start_time for s in result.scheduled] == [0, 40]

    def test_patient_break_delays_next_task(self, consult):
        doctors = [
            Doctor(id="D1", name="Dr. One", can_do=("T",)),
            Doctor(id="D2", name="Dr. Two", can_do=("T",)),
        ]
        result = generate_schedule(
            SchedulerSettings(patient_break_minutes=15),
            [consult],
            doctors,
            [Patient(id="P1", name="Alice", needs=("T", "T"))],
            session_duration=SESSION,
        )
        assert [s.start_time for s in result.scheduled] == [0, 45]

    def test_manual_appointment_replaces_need(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [doctor],
            [Patient(id="P1", name="Alice", needs=("T",))],
            [ManualAppointment(id="A1", patient_id="P1", task_id="T", doctor_id="D1", start_time=50)],
            session_duration=SESSION,
        )
        assert result.unhandled == []
        assert len(result.scheduled) == 1
        entry = result.scheduled[0]
        assert (entry.start_time, entry.doctor_id, entry.task_id) == (50, "D1", "T")
        assert entry.is_manual is True

    def test_overlapping_manual_appointments_abort_placement(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [doctor],
            [
                Patient(id="P1", name="Alice", needs=("T",)),
                Patient(id="P2", name="Bob", needs=("T",)),
                Patient(id="P3", name="Carol", needs=("T",)),
            ],
            [
                ManualAppointment(id="A1", patient_id="P1", task_id="T", doctor_id="D1", start_time=0),
                ManualAppointment(id="A2", patient_id="P2", task_id="T", doctor_id="D1", start_time=10),
            ],
            session_duration=SESSION,
        )
        assert result.scheduled == []
        assert result.status == "MANUAL_CONFLICT"
        assert result.success is False
        assert len(result.conflicts) == 1
        assert result.conflicts[0].reason == UnhandledReason.MANUAL_DOCTOR_CONFLICT
        assert [u.reason for u in result.unhandled] == [UnhandledReason.MANUAL_DOCTOR_CONFLICT]
        assert result.unhandled[0].patient_id == "P2"

    def test_no_capable_doctor(self, consult):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [Doctor(id="D1", name="Dr. One", can_do=("OTHER",))],
            [Patient(id="P1", name="Alice", needs=("T",))],
            session_duration=SESSION,
        )
        assert result.scheduled == []
        assert len(result.unhandled) == 1
        assert result.unhandled[0].reason == UnhandledReason.NO_CAPABLE_DOCTOR


class TestGreedyPlacement:
    """Slot choice, tie-breaking and unhandled reasons."""

    def test_tie_goes_to_first_listed_doctor(self, consult):
        doctors = [
            Doctor(id="D2", name="Dr. Two", can_do=("T",)),
            Doctor(id="D1", name="Dr. One", can_do=("T",)),
        ]
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            doctors,
            [Patient(id="P1", name="Alice", needs=("T",))],
            session_duration=SESSION,
        )
        assert result.scheduled[0].doctor_id == "D2"

    def test_earliest_doctor_wins_over_order(self, consult):
        doctors = [
            Doctor(id="D1", name="Dr. One", can_do=("T",)),
            Doctor(id="D2", name="Dr. Two", can_do=("T",)),
        ]
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            doctors,
            [
                Patient(id="P1", name="Alice", needs=()),
                Patient(id="P2", name="Bob", needs=("T",)),
            ],
            [ManualAppointment(id="A1", patient_id="P1", task_id="T", doctor_id="D1", start_time=0)],
            session_duration=SESSION,
        )
        greedy = [s for s in result.scheduled if not s.is_manual]
        assert [(s.doctor_id, s.start_time) for s in greedy] == [("D2", 0)]

    def test_patient_rest_and_gap_filling(self):
        tasks = [
            Task(id="T", name="Infusion", doctor_duration=10, patient_duration=40),
            Task(id="U", name="Check", doctor_duration=10, patient_duration=10),
        ]
        doctor = Doctor(id="D1", name="Dr. One", can_do=("T", "U"))
        result = generate_schedule(
            SchedulerSettings(),
            tasks,
            [doctor],
            [
                Patient(id="P1", name="Alice", needs=("T", "U")),
                Patient(id="P2", name="Bob", needs=("T",)),
            ],
            session_duration=SESSION,
        )
        assert [(s.patient_id, s.task_id, s.start_time) for s in result.scheduled] == [
            ("P1", "T", 0),
            ("P2", "T", 10),
            ("P1", "U", 40),
        ]
        assert result.scheduled[0].patient_end_time == 40

    def test_no_feasible_slot_when_session_full(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [doctor],
            [
                Patient(id="P1", name="Alice", needs=("T",)),
                Patient(id="P2", name="Bob", needs=("T",)),
            ],
            session_duration=50,
        )
        assert len(result.scheduled) == 1
        assert [(u.patient_id, u.reason) for u in result.unhandled] == [
            ("P2", UnhandledReason.NO_FEASIBLE_SLOT)
        ]

    def test_unknown_task_reported(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [doctor],
            [Patient(id="P1", name="Alice", needs=("MISSING", "T"))],
            session_duration=SESSION,
        )
        assert [u.reason for u in result.unhandled] == [UnhandledReason.TASK_NOT_FOUND]
        assert len(result.scheduled) == 1

    def test_manual_with_unknown_task_reported_once(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [doctor],
            [Patient(id="P1", name="Alice", needs=("MISSING",))],
            [ManualAppointment(id="A1", patient_id="P1", task_id="MISSING", doctor_id="D1", start_time=0)],
            session_duration=SESSION,
        )
        assert result.scheduled == []
        assert [u.reason for u in result.unhandled] == [UnhandledReason.TASK_NOT_FOUND]

    def test_manual_covers_one_duplicate_need(self, consult, doctor):
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            [doctor],
            [Patient(id="P1", name="Alice", needs=("T", "T"))],
            [ManualAppointment(id="A1", patient_id="P1", task_id="T", doctor_id="D1", start_time=100)],
            session_duration=SESSION,
        )
        assert [(s.start_time, s.is_manual) for s in result.scheduled] == [
            (0, False),
            (100, True),
        ]
        assert result.unhandled == []

    def test_zero_doctor_duration_never_blocks_doctor(self):
        task = Task(id="R", name="Rest", doctor_duration=0, patient_duration=20)
        result = generate_schedule(
            SchedulerSettings(),
            [task],
            [Doctor(id="D1", name="Dr. One", can_do=("R",))],
            [
                Patient(id="P1", name="Alice", needs=("R",)),
                Patient(id="P2", name="Bob", needs=("R",)),
            ],
            session_duration=SESSION,
        )
        assert [s.start_time for s in result.scheduled] == [0, 0]

    def test_empty_input(self):
        result = generate_schedule(SchedulerSettings(), [], [], [], session_duration=SESSION)
        assert result.scheduled == []
        assert result.unhandled == []
        assert result.status == "NO_DEMANDS"

    def test_gap_leaves_doctor_break_before_later_task(self):
        tasks = [
            Task(id="X", name="Scan", doctor_duration=50, patient_duration=50),
            Task(id="T", name="Consultation", doctor_duration=30, patient_duration=30),
        ]
        doctors = [
            Doctor(id="D1", name="Dr. One", can_do=("T",)),
            Doctor(id="D2", name="Dr. Two", can_do=("X",)),
        ]
        settings = SchedulerSettings(doctor_break_minutes=30)
        result = generate_schedule(
            settings,
            tasks,
            doctors,
            [
                Patient(id="P1", name="Alice", needs=("X", "T")),
                Patient(id="P2", name="Bob", needs=("T",)),
            ],
            session_duration=SESSION,
        )
        # [0, 30) would end only 20 minutes before P1's consultation at 50
        assert [
            (s.patient_id, s.doctor_id, s.start_time) for s in result.scheduled
        ] == [("P1", "D2", 0), ("P1", "D1", 50), ("P2", "D1", 110)]
        _assert_no_double_booking(result, settings, SESSION)

    def test_gap_leaves_doctor_break_before_manual_appointment(self, consult, doctor):
        settings = SchedulerSettings(doctor_break_minutes=10)
        result = generate_schedule(
            settings,
            [consult],
            [doctor],
            [
                Patient(id="P1", name="Alice", needs=("T",)),
                Patient(id="P2", name="Bob", needs=("T",)),
            ],
            [ManualAppointment(id="A1", patient_id="P1", task_id="T", doctor_id="D1", start_time=35)],
            session_duration=SESSION,
        )
        assert [(s.patient_id, s.start_time) for s in result.scheduled] == [
            ("P1", 35),
            ("P2", 75),
        ]
        _assert_no_double_booking(result, settings, SESSION)


class TestContract:
    def test_missing_settings_rejected(self, consult, doctor):
        with pytest.raises(ValueError):
            generate_schedule(None, [consult], [doctor], [], session_duration=SESSION)

    def test_negative_session_rejected(self, consult, doctor):
        with pytest.raises(ValueError):
            generate_schedule(SchedulerSettings(), [consult], [doctor], [], session_duration=-1)

    def test_negative_break_rejected(self):
        with pytest.raises(ValueError):
            SchedulerSettings(doctor_break_minutes=-5)


class TestProperties:
    """Invariants checked over generated clinic days."""

    @staticmethod
    def _clinic(seed, with_manual=False):
        rng = random.Random(seed)
        tasks = [
            Task(
                id=f"T{i}",
                name=f"Task {i}",
                doctor_duration=rng.choice([0, 10, 15, 30]),
                patient_duration=rng.choice([10, 20, 45]),
            )
            for i in range(4)
        ]
        doctors = [
            Doctor(
                id=f"D{i}",
                name=f"Doctor {i}",
                can_do=tuple(t.id for t in tasks if rng.random() < 0.6),
            )
            for i in range(3)
        ]
        patients = [
            Patient(
                id=f"P{i}",
                name=f"Patient {i}",
                needs=tuple(rng.choice(tasks).id for _ in range(rng.randint(1, 4))),
                daily_id=i + 1,
            )
            for i in range(12)
        ]
        settings = SchedulerSettings(
            patient_break_minutes=rng.choice([0, 5, 10]),
            doctor_break_minutes=rng.choice([0, 5, 10]),
        )
        manual = []
        if with_manual:
            # Fixed on one doctor, 100 minutes apart, each covering a first need
            for i, patient in enumerate(patients[:2]):
                manual.append(
                    ManualAppointment(
                        id=f"A{i}",
                        patient_id=patient.id,
                        task_id=patient.needs[0],
                        doctor_id="D0",
                        start_time=rng.choice([20, 40, 60]) + i * 100,
                    )
                )
        return settings, tasks, doctors, patients, manual

    @pytest.mark.parametrize("with_manual", [False, True])
    @pytest.mark.parametrize("seed", range(8))
    def test_invariants_hold(self, seed, with_manual):
        settings, tasks, doctors, patients, manual = self._clinic(seed, with_manual)
        result = generate_schedule(
            settings, tasks, doctors, patients, manual, session_duration=SESSION
        )

        assert result.status == "SCHEDULED"
        assert sum(1 for s in result.scheduled if s.is_manual) == len(manual)
        total_demands = sum(len(p.needs) for p in patients)
        assert len(result.scheduled) + len(result.unhandled) == total_demands
        _assert_no_double_booking(result, settings, SESSION)
        starts = [s.start_time for s in result.scheduled]
        assert starts == sorted(starts)

    @pytest.mark.parametrize("seed", range(3))
    def test_deterministic(self, seed):
        settings, tasks, doctors, patients, manual = self._clinic(seed, with_manual=True)
        first = generate_schedule(
            settings, tasks, doctors, patients, manual, session_duration=SESSION
        )
        second = generate_schedule(
            settings, tasks, doctors, patients, manual, session_duration=SESSION
        )
        assert first == second


class TestResultViews:
    def test_timeline_journey_and_summary(self, consult):
        doctors = [
            Doctor(id="D1", name="Dr. One", can_do=("T",)),
            Doctor(id="D2", name="Dr. Two", can_do=("T",)),
        ]
        result = generate_schedule(
            SchedulerSettings(),
            [consult],
            doctors,
            [
                Patient(id="P1", name="Alice", needs=("T", "T")),
                Patient(id="P2", name="Bob", needs=("T",)),
            ],
            session_duration=SESSION,
        )
        # P1 first T on D1 at 0, second T waits for P1 at 30 on D1,
        # P2 takes D2 at 0
        timeline = doctor_timeline(result)
        assert [s.start_time for s in timeline["D1"]] == [0, 30]
        assert [s.patient_id for s in timeline["D2"]] == ["P2"]

        journey = patient_journey(result)
        assert [s.start_time for s in journey["P1"]] == [0, 30]

        summary = summarize_result(result)
        assert summary["scheduled_count"] == 3
        assert summary["unhandled_count"] == 0
        assert summary["doctor_busy_minutes"] == {"D1": 60, "D2": 30}
        assert summary["last_end_time"] == 60
