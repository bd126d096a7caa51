from datetime import datetime, timedelta, timezone
import threading

import pytest

from conftest import FIXED_NOW, job_config
from rostersync.exceptions import (
    ConfigurationError,
    EmptyRosterError,
    JobAlreadyRunningError,
    RosterResolutionError,
    SyncJobError,
)
from rostersync.jobs.schedule_sync_job import ScheduleSyncJob
from rostersync.models.enums import JobType


@pytest.fixture()
def make_job(job_services):
    def _make(handle="oncall-sre", ids=("S_PRIMARY",), dryrun=False, **options):
        return ScheduleSyncJob("schedule-0", job_config(handle, ids, **options), dryrun=dryrun, **job_services)
    return _make


def test_accessors(make_job):
    job = make_job(ids=("S_PRIMARY", "S_SECONDARY"), dryrun=True)
    assert job.name == "job: sync pagerduty schedule(s) 'S_PRIMARY,S_SECONDARY' to slack group: 'oncall-sre'"
    assert job.job_type is JobType.SCHEDULE_SYNC
    assert job.icon == ":calendar:"
    assert job.slack_handle == "oncall-sre"
    assert job.dryrun is True
    assert job.error is None
    assert job.pagerduty_objects == []


def test_next_run_follows_cron(make_job):
    job = make_job()
    assert job.next_run() == datetime(2024, 5, 6, 12, 10, tzinfo=timezone.utc)


def test_run_syncs_on_call_people_into_group(make_job, on_call, chat_api):
    on_call("P_ALICE", "S_PRIMARY")
    on_call("P_CAROL", "S_PRIMARY", level=2)
    job = make_job()
    outcome = job.run()
    assert outcome.no_change is False
    assert [e.id for e in outcome.roster] == ["P_ALICE", "P_CAROL"]
    assert [i.id for i in outcome.matched] == ["U_ALICE", "U_CAROL"]
    assert set(chat_api.groups["G_ONCALL"].member_ids) == {"U_ALICE", "U_CAROL"}
    assert [s.name for s in job.pagerduty_objects] == ["Primary"]
    assert job.error is None


def test_second_run_reports_no_change(make_job, on_call, chat_api):
    on_call("P_CAROL", "S_PRIMARY")
    job = make_job()
    job.run()
    assert job.run().no_change is True
    assert len(chat_api.called("replace_group_members")) == 1


def test_dryrun_job_never_writes(make_job, on_call, chat_api):
    on_call("P_CAROL", "S_PRIMARY")
    outcome = make_job(dryrun=True).run()
    assert outcome.no_change is False
    assert chat_api.writes == []


def test_handover_window_passed_to_resolver(make_job, on_call, roster_api):
    on_call("P_ALICE", "S_PRIMARY")
    make_job(handoverTimeFrameForward="1h", handoverTimeFrameBackward="15m").run()
    window = roster_api.called("list_on_call_now")[0][2]
    assert window.since == FIXED_NOW - timedelta(minutes=15)
    assert window.until == FIXED_NOW + timedelta(hours=1)


def test_bad_duration_degrades_to_zero_and_is_recorded(make_job, on_call, roster_api):
    on_call("P_ALICE", "S_PRIMARY")
    on_call("P_BOB", "S_PRIMARY")
    job = make_job(handoverTimeFrameForward="soon")
    outcome = job.run()
    window = roster_api.called("list_on_call_now")[0][2]
    assert window.until == FIXED_NOW
    assert isinstance(job.error, ConfigurationError)
    assert "soon" in str(job.error)
    assert outcome.no_change is True


def test_resolution_failure_aborts_before_matching(make_job, on_call, chat_api):
    on_call("P_ALICE", "S_GONE")
    job = make_job(ids=("S_GONE",))
    with pytest.raises(RosterResolutionError):
        job.run()
    assert isinstance(job.error, RosterResolutionError)
    assert chat_api.writes == []


def test_nobody_on_shift_is_empty_roster_error(make_job, chat_api):
    job = make_job()
    with pytest.raises(EmptyRosterError):
        job.run()
    assert isinstance(job.error, EmptyRosterError)
    assert chat_api.writes == []


def test_reconcile_failure_is_wrapped(make_job, on_call):
    on_call("P_ALICE", "S_PRIMARY")
    job = make_job(handle="no-such-group")
    with pytest.raises(SyncJobError) as exc:
        job.run()
    assert "no-such-group" in str(exc.value)
    assert job.error is exc.value
    # roster and sources are kept for the status message
    assert [e.id for e in job.outcome.roster] == ["P_ALICE"]


def test_each_run_overwrites_previous_outcome(make_job, on_call, roster_api):
    job = make_job()
    with pytest.raises(EmptyRosterError):
        job.run()
    on_call("P_ALICE", "S_PRIMARY")
    on_call("P_BOB", "S_PRIMARY")
    job.run()
    assert job.error is None
    assert [e.id for e in job.outcome.roster] == ["P_ALICE", "P_BOB"]


def test_concurrent_run_is_rejected(make_job, on_call, roster_api):
    on_call("P_ALICE", "S_PRIMARY")
    job = make_job()
    entered, release = threading.Event(), threading.Event()
    original = roster_api.list_on_call_now

    def slow_list(*args, **kwargs):
        entered.set()
        release.wait(5)
        return original(*args, **kwargs)

    roster_api.list_on_call_now = slow_list
    worker = threading.Thread(target=job.run)
    worker.start()
    assert entered.wait(5)
    assert job.running is True
    with pytest.raises(JobAlreadyRunningError):
        job.run()
    release.set()
    worker.join(5)
    assert job.running is False
    assert job.error is None


def test_info_message_body_lists_people(make_job, on_call):
    on_call("P_ALICE", "S_PRIMARY")
    on_call("P_BOB", "S_PRIMARY")
    job = make_job()
    job.run()
    assert job.slack_info_message_body() == (
        "*Who is on shift:*\n - <https://pd.example/users/P_ALICE|P_ALICE>,\n - <https://pd.example/users/P_BOB|P_BOB>"
    )


def test_status_view(make_job, on_call):
    on_call("P_ALICE", "S_PRIMARY")
    on_call("P_BOB", "S_PRIMARY")
    job = make_job()
    job.run()
    status = job.status()
    assert status.job_id == "schedule-0"
    assert status.no_change is True
    assert status.last_started_at == FIXED_NOW
    assert [m.id for m in status.matched] == ["U_ALICE", "U_BOB"]
