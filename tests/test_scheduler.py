import itertools

import pytest
from datetime import datetime, timedelta
from sqlalchemy import select

from qa_center.models import CriteriaProfile, EvaluationJob, Interaction, JobStatus, SchedulerRun
from qa_center.models.interaction import DIRECTION_INBOUND, DIRECTION_OUTBOUND
from qa_center.scheduler.service import ProfileNotFoundError, SchedulerError, run_status


_external_ids = itertools.count(1)


async def make_profile(db, **kwargs) -> CriteriaProfile:
    scheduler = kwargs.pop("scheduler", None)
    queues = kwargs.pop("queues", [])
    channels = kwargs.pop("channels", [])
    profile = CriteriaProfile(name=kwargs.pop("name", "Support"), form_id="f1", form_name="Form 1", **kwargs)
    profile.queues = queues
    profile.channels = channels
    if scheduler is not None:
        profile.scheduler = scheduler
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


async def make_interactions(db, count: int, **kwargs) -> list:
    now = datetime.utcnow()
    interactions = []
    for index in range(count):
        values = dict(
            external_id=f"ext-{next(_external_ids)}",
            channel="call",
            direction=DIRECTION_INBOUND,
            agent_id="1001",
            queue_id="q1",
            queue_name="Support",
            connect_duration=120,
            recording_url=f"https://rec.example.com/{index}.mp3",
            created_at=now - timedelta(minutes=index + 1),
        )
        values.update(kwargs)
        interactions.append(Interaction(**values))
    db.add_all(interactions)
    await db.commit()
    return interactions


@pytest.mark.parametrize(
    "found, processed, error, expected",
    [
        (0, 0, None, "success"),
        (5, 5, None, "success"),
        (5, 2, None, "partial"),
        (5, 0, None, "failed"),
        (3, 3, "db down", "failed"),
    ],
)
def test_run_status(found, processed, error, expected):
    assert run_status(found, processed, error) == expected


@pytest.mark.asyncio
async def test_run_queues_jobs_up_to_limit(db_session, scheduler_service):
    profile = await make_profile(db_session)
    await make_interactions(db_session, 5)

    result = await scheduler_service.run_profile(db_session, profile.id, max_evaluations=3)

    assert result["success"] is True
    assert result["interactionsFound"] == 3
    assert result["interactionsProcessed"] == 3
    assert all(job["status"] == "queued" for job in result["jobs"])

    jobs = (await db_session.execute(select(EvaluationJob))).scalars().all()
    assert len(jobs) == 3
    assert {job.status for job in jobs} == {JobStatus.QUEUED}
    assert {job.qa_form_id for job in jobs} == {"f1"}
    assert {job.evaluator_name for job in jobs} == {"Manual Run"}

    runs = (await db_session.execute(select(SchedulerRun))).scalars().all()
    assert len(runs) == 1
    assert runs[0].status == "success"
    assert runs[0].trigger == "manual"
    assert sorted(runs[0].job_ids) == sorted(job["jobId"] for job in result["jobs"])

    await db_session.refresh(profile)
    assert profile.scheduler["lastRunStatus"] == "success"
    assert profile.scheduler["lastRunSummary"] == {"interactionsFound": 3, "interactionsProcessed": 3}


@pytest.mark.asyncio
async def test_second_run_skips_already_queued(db_session, scheduler_service):
    profile = await make_profile(db_session)
    await make_interactions(db_session, 2)

    first = await scheduler_service.run_profile(db_session, profile.id)
    second = await scheduler_service.run_profile(db_session, profile.id)

    assert first["interactionsProcessed"] == 2
    assert second["success"] is True
    assert second["interactionsFound"] == 0
    assert second["message"] == "No interactions found matching criteria"


@pytest.mark.asyncio
async def test_run_applies_profile_filters(db_session, scheduler_service):
    profile = await make_profile(
        db_session,
        direction="outbound",
        min_call_duration=60,
        queues=[{"queueId": "q2", "queueName": "Sales"}],
        channels=["call"],
    )
    await make_interactions(db_session, 1, direction=DIRECTION_OUTBOUND, queue_id="q2", queue_name="Sales")
    await make_interactions(db_session, 1, direction=DIRECTION_INBOUND, queue_id="q2", queue_name="Sales")
    await make_interactions(db_session, 1, direction=DIRECTION_OUTBOUND, queue_id="q2", connect_duration=30)
    await make_interactions(db_session, 1, direction=DIRECTION_OUTBOUND, queue_id="q1", queue_name="Support")
    await make_interactions(
        db_session, 1, direction=DIRECTION_OUTBOUND, queue_id="q2", queue_name="Sales", channel="email"
    )
    await make_interactions(
        db_session, 1, direction=DIRECTION_OUTBOUND, queue_id="q2", queue_name="Sales", recording_url=None
    )
    await make_interactions(
        db_session, 1, direction=DIRECTION_OUTBOUND, queue_id="q2", queue_name="Sales", evaluated=True
    )
    await make_interactions(
        db_session,
        1,
        direction=DIRECTION_OUTBOUND,
        queue_id="q2",
        queue_name="Sales",
        created_at=datetime.utcnow() - timedelta(days=3),
    )

    result = await scheduler_service.run_profile(db_session, profile.id)
    assert result["interactionsFound"] == 1


@pytest.mark.asyncio
async def test_run_matches_queue_by_name(db_session, scheduler_service):
    profile = await make_profile(db_session, queues=[{"queueName": "Support"}])
    await make_interactions(db_session, 2, queue_id="other-id")

    result = await scheduler_service.run_profile(db_session, profile.id)
    assert result["interactionsFound"] == 2


@pytest.mark.asyncio
async def test_run_missing_profile(db_session, scheduler_service):
    with pytest.raises(ProfileNotFoundError):
        await scheduler_service.run_profile(db_session, 404)


@pytest.mark.asyncio
async def test_start_profile_registers_job_without_running(db_session, scheduler_service):
    profile = await make_profile(db_session, scheduler={"enabled": True, "cronExpression": "0 9 * * *"})
    await make_interactions(db_session, 2)

    assert scheduler_service.start_profile(profile) is True
    assert scheduler_service.active_profile_ids() == [profile.id]
    assert (await db_session.execute(select(EvaluationJob))).scalars().all() == []

    # Re-registering replaces the job
    assert scheduler_service.start_profile(profile) is True
    assert len(scheduler_service.scheduler.get_jobs()) == 1

    assert scheduler_service.stop_profile(profile.id) is True
    assert scheduler_service.stop_profile(profile.id) is False
    assert scheduler_service.active_profile_ids() == []


@pytest.mark.asyncio
async def test_start_profile_ignores_disabled_or_inactive(db_session, scheduler_service):
    disabled = await make_profile(db_session, name="Disabled")
    inactive = await make_profile(
        db_session, name="Inactive", is_active=False, scheduler={"enabled": True, "cronExpression": "0 9 * * *"}
    )
    assert scheduler_service.start_profile(disabled) is False
    assert scheduler_service.start_profile(inactive) is False
    assert scheduler_service.active_profile_ids() == []


@pytest.mark.asyncio
async def test_initialize_registers_enabled_profiles(db_session, scheduler_service):
    enabled = await make_profile(db_session, name="On", scheduler={"enabled": True, "cronExpression": "0 9 * * *"})
    await make_profile(db_session, name="Off")

    assert await scheduler_service.initialize(db_session) == 1
    assert scheduler_service.active_profile_ids() == [enabled.id]


@pytest.mark.asyncio
async def test_update_scheduler(db_session, scheduler_service):
    profile = await make_profile(db_session)

    updated = await scheduler_service.update_scheduler(
        db_session, profile.id, {"enabled": True, "cronExpression": "0 6 * * 1"}
    )
    assert updated.scheduler["cronExpression"] == "0 6 * * 1"
    assert scheduler_service.active_profile_ids() == [profile.id]

    await scheduler_service.update_scheduler(db_session, profile.id, {"enabled": False})
    assert scheduler_service.active_profile_ids() == []

    with pytest.raises(SchedulerError):
        await scheduler_service.update_scheduler(db_session, profile.id, {"cronExpression": "bad"})
    with pytest.raises(ProfileNotFoundError):
        await scheduler_service.update_scheduler(db_session, 404, {"enabled": True})


@pytest.mark.asyncio
async def test_scheduled_run_uses_profile_evaluator(db_session, scheduler_service):
    profile = await make_profile(
        db_session,
        scheduler={"enabled": True, "maxEvaluations": 1, "evaluatorId": "bot", "evaluatorName": "Nightly Bot"},
    )
    await make_interactions(db_session, 3)

    await scheduler_service._run_scheduled(profile.id)

    jobs = (await db_session.execute(select(EvaluationJob))).scalars().all()
    assert len(jobs) == 1
    assert jobs[0].evaluator_name == "Nightly Bot"
    run = (await db_session.execute(select(SchedulerRun))).scalar_one()
    assert run.trigger == "cron"
