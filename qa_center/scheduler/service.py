"""Cron-driven evaluation runs for criteria profiles.

Each active profile with scheduling enabled owns one APScheduler job. A run
selects recent, recorded, not yet evaluated interactions that match the
profile and queues one ``EvaluationJob`` per interaction.
"""
import json
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import select, or_, and_, exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qa_center.core.config import settings
from qa_center.core.database import AsyncSessionLocal
from qa_center.models.criteria import CriteriaProfile
from qa_center.models.evaluation import EvaluationJob, JobStatus
from qa_center.models.interaction import Interaction, DIRECTION_INBOUND, DIRECTION_OUTBOUND
from qa_center.models.scheduler import SchedulerRun
from qa_center.scheduler.cron import build_trigger, CronExpressionError


logger = logging.getLogger(__name__)

JOB_ID_PREFIX = "criteria-profile-"
MANUAL_EVALUATOR = {"id": "manual", "name": "Manual Run"}


class SchedulerError(Exception):
    """Scheduler configuration cannot be applied."""


class ProfileNotFoundError(SchedulerError):
    """Criteria profile does not exist."""


def run_status(found: int, processed: int, error: Optional[str] = None) -> str:
    """History status of a run: success, partial or failed."""
    if error:
        return "failed"
    if processed == found:
        return "success"
    if processed > 0:
        return "partial"
    return "failed"


def _as_list(items: List, *keys: str) -> List[str]:
    """Pull identifiers out of profile entries stored as dicts or plain values."""
    values = []
    for item in items or []:
        if isinstance(item, dict):
            value = next((item[key] for key in keys if item.get(key) not in (None, "")), None)
        else:
            value = item
        if value not in (None, ""):
            values.append(str(value))
    return values


def build_interaction_query(profile: CriteriaProfile, now: datetime, lookback_hours: int):
    """Select statement for interactions a profile run should evaluate."""
    conditions = [
        Interaction.recording_url.is_not(None),
        Interaction.recording_url != "",
        Interaction.evaluated.is_(False),
        Interaction.created_at >= now - timedelta(hours=lookback_hours),
        ~exists().where(
            EvaluationJob.interaction_id == Interaction.id,
            EvaluationJob.status.in_([JobStatus.QUEUED, JobStatus.PROCESSING]),
        ),
    ]

    if profile.direction == "inbound":
        conditions.append(Interaction.direction == DIRECTION_INBOUND)
    elif profile.direction == "outbound":
        conditions.append(Interaction.direction == DIRECTION_OUTBOUND)

    agent_ids = _as_list(profile.agents, "agentId", "id")
    if agent_ids:
        conditions.append(Interaction.agent_id.in_(agent_ids))

    queue_ids = _as_list(profile.queues, "queueId", "id")
    queue_names = _as_list(profile.queues, "queueName", "name")
    if queue_ids or queue_names:
        conditions.append(or_(Interaction.queue_id.in_(queue_ids), Interaction.queue_name.in_(queue_names)))

    work_codes = _as_list(profile.work_codes, "code")
    if work_codes:
        conditions.append(Interaction.work_code.in_(work_codes))

    channels = [str(channel).lower() for channel in profile.channels or []]
    if channels:
        conditions.append(Interaction.channel.in_(channels))

    if profile.min_call_duration and profile.min_call_duration > 0:
        conditions.append(Interaction.connect_duration >= profile.min_call_duration)

    return select(Interaction).where(and_(*conditions)).order_by(
        Interaction.created_at.desc(), Interaction.id.desc()
    )


class SchedulerService:
    """Owns the APScheduler instance and one cron job per scheduled profile."""

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.session_factory = session_factory
        self.scheduler = scheduler or AsyncIOScheduler()

    @staticmethod
    def job_id(profile_id: int) -> str:
        return f"{JOB_ID_PREFIX}{profile_id}"

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Evaluation scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Evaluation scheduler stopped")

    async def initialize(self, db: AsyncSession) -> int:
        """Register jobs for every active profile with scheduling enabled."""
        result = await db.execute(select(CriteriaProfile).where(CriteriaProfile.is_active.is_(True)))
        started = 0
        for profile in result.scalars().all():
            if profile.scheduler_enabled and self.start_profile(profile):
                started += 1
        logger.info(f"Initialized {started} scheduled criteria profiles")
        return started

    def start_profile(self, profile: CriteriaProfile) -> bool:
        """(Re)register the cron job for a profile. Never triggers a run."""
        self.stop_profile(profile.id)

        config = profile.scheduler
        if not profile.is_active or not config.get("enabled"):
            logger.info(f"Scheduler not enabled for profile: {profile.name}")
            return False

        try:
            trigger = build_trigger(config.get("cronExpression"))
        except CronExpressionError as e:
            logger.error(f"Invalid cron expression for profile {profile.name}: {e}")
            return False

        self.scheduler.add_job(
            self._run_scheduled,
            trigger=trigger,
            args=[profile.id],
            id=self.job_id(profile.id),
            name=profile.name,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.info(f"Scheduler started for profile: {profile.name} with cron: {config.get('cronExpression')}")
        return True

    def stop_profile(self, profile_id: int) -> bool:
        try:
            self.scheduler.remove_job(self.job_id(profile_id))
        except JobLookupError:
            return False
        logger.info(f"Stopped scheduler for profile ID: {profile_id}")
        return True

    def active_profile_ids(self) -> List[int]:
        return sorted(
            int(job.id[len(JOB_ID_PREFIX):])
            for job in self.scheduler.get_jobs()
            if job.id.startswith(JOB_ID_PREFIX)
        )

    async def update_scheduler(self, db: AsyncSession, profile_id: int, config: Dict[str, Any]) -> CriteriaProfile:
        """
        Store new scheduler settings on a profile and start or stop its job.

        Raises:
            ProfileNotFoundError: if the profile does not exist
            SchedulerError: if the cron expression is invalid
        """
        profile = await db.get(CriteriaProfile, profile_id)
        if profile is None:
            raise ProfileNotFoundError("Profile not found")

        merged = {**profile.scheduler, **config}
        try:
            build_trigger(merged.get("cronExpression"))
        except CronExpressionError:
            raise SchedulerError("Invalid cron expression")

        profile.scheduler = merged
        await db.commit()
        await db.refresh(profile)

        if merged.get("enabled"):
            self.start_profile(profile)
        else:
            self.stop_profile(profile.id)
        return profile

    async def run_profile(
        self,
        db: AsyncSession,
        profile_id: int,
        max_evaluations: Optional[int] = None,
        evaluator: Optional[Dict[str, Any]] = None,
        trigger: str = "manual",
    ) -> Dict[str, Any]:
        """
        Queue evaluations for interactions matching a profile.

        Returns:
            ``{success, profileId, profileName, interactionsFound, interactionsProcessed, jobs}``
            or ``{success: False, profileId, error}``

        Raises:
            ProfileNotFoundError: if the profile does not exist
        """
        profile = await db.get(CriteriaProfile, profile_id)
        if profile is None:
            raise ProfileNotFoundError("Profile not found")

        config = profile.scheduler
        limit = max_evaluations or config.get("maxEvaluations") or settings.scheduler_default_max_evaluations
        evaluator = evaluator or MANUAL_EVALUATOR
        started_at = datetime.utcnow()
        logger.info(f"Finding interactions for profile: {profile.name}, max: {limit}")

        try:
            result = await db.execute(
                build_interaction_query(profile, started_at, settings.scheduler_lookback_hours).limit(limit)
            )
            interactions = result.scalars().all()

            jobs = []
            for interaction in interactions:
                if not interaction.recording_url:
                    logger.info(f"Skipping interaction {interaction.id} due to missing recording")
                    continue
                job = EvaluationJob(
                    interaction_id=interaction.id,
                    profile_id=profile.id,
                    qa_form_id=profile.form_id,
                    recording_url=interaction.recording_url,
                    evaluator_id=str(evaluator.get("id")),
                    evaluator_name=evaluator.get("name"),
                    priority=settings.scheduler_job_priority,
                    status=JobStatus.QUEUED,
                )
                db.add(job)
                jobs.append(job)
            await db.flush()

            outcome = {
                "success": True,
                "profileId": profile.id,
                "profileName": profile.name,
                "interactionsFound": len(interactions),
                "interactionsProcessed": len(jobs),
                "jobs": [
                    {"interactionId": job.interaction_id, "jobId": job.id, "status": job.status.value}
                    for job in jobs
                ],
            }
            if not interactions:
                outcome["message"] = "No interactions found matching criteria"
            logger.info(f"Queued {len(jobs)} evaluations for profile: {profile.name}")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error running scheduled evaluation for profile {profile_id}: {e}")
            profile = await db.get(CriteriaProfile, profile_id)
            outcome = {"success": False, "profileId": profile_id, "error": str(e)}

        await self._record_run(db, profile, outcome, limit, evaluator, trigger, started_at)
        return outcome

    async def _record_run(
        self,
        db: AsyncSession,
        profile: CriteriaProfile,
        outcome: Dict[str, Any],
        limit: int,
        evaluator: Dict[str, Any],
        trigger: str,
        started_at: datetime,
    ) -> None:
        found = outcome.get("interactionsFound", 0)
        processed = outcome.get("interactionsProcessed", 0)
        status = run_status(found, processed, outcome.get("error"))

        db.add(SchedulerRun(
            profile_id=profile.id,
            trigger=trigger,
            status=status,
            interactions_found=found,
            interactions_processed=processed,
            max_evaluations=limit,
            evaluator_id=str(evaluator.get("id")),
            evaluator_name=evaluator.get("name"),
            error=outcome.get("error"),
            job_ids_json=json.dumps([job["jobId"] for job in outcome.get("jobs", [])]),
            started_at=started_at,
            finished_at=datetime.utcnow(),
        ))
        profile.scheduler = {
            **profile.scheduler,
            "lastRun": started_at.isoformat(),
            "lastRunStatus": status,
            "lastRunSummary": {"interactionsFound": found, "interactionsProcessed": processed},
        }
        await db.commit()

    async def _run_scheduled(self, profile_id: int) -> None:
        """APScheduler entry point: run with the profile's own limit and evaluator."""
        async with self.session_factory() as db:
            profile = await db.get(CriteriaProfile, profile_id)
            if profile is None or not profile.is_active:
                self.stop_profile(profile_id)
                return
            config = profile.scheduler
            evaluator = {"id": config.get("evaluatorId"), "name": config.get("evaluatorName")}
            logger.info(f"Running scheduled evaluation for profile: {profile.name}")
            outcome = await self.run_profile(
                db, profile_id, config.get("maxEvaluations"), evaluator, trigger="cron"
            )
            if not outcome["success"]:
                logger.error(f"Scheduled run failed for profile {profile.name}: {outcome['error']}")


scheduler_service = SchedulerService()


def get_scheduler_service() -> SchedulerService:
    """FastAPI dependency for the process-wide scheduler service."""
    return scheduler_service
