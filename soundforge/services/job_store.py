"""
Owner-scoped persistence for jobs.

Every query filters on owner_id, so a job owned by one user is invisible to
every other user. State transitions are conditional updates: a row already in
a terminal state is never rewritten, no matter how many checks race for it.
"""
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from soundforge.models.job import (
    ACTIVE_STATUSES,
    Job,
    JobKind,
    JobStatus,
    utcnow,
)


class JobStore:
    """Repository for Job rows."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, job: Job) -> Job:
        self._session.add(job)
        await self._session.commit()
        await self._session.refresh(job)
        return job

    async def get(self, owner_id: str, job_id: str) -> Optional[Job]:
        result = await self._session.execute(
            select(Job).where(Job.id == job_id, Job.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def list_jobs(
        self,
        owner_id: str,
        kind: Optional[JobKind] = None,
        favorites_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Job], int]:
        """Return one page of jobs, newest first, plus the total count."""
        conditions = [Job.owner_id == owner_id]
        if kind is not None:
            conditions.append(Job.kind == JobKind(kind).value)
        if favorites_only:
            conditions.append(Job.is_favorite.is_(True))

        count_result = await self._session.execute(select(func.count(Job.id)).where(*conditions))
        total = count_result.scalar()

        result = await self._session.execute(
            select(Job)
            .where(*conditions)
            .order_by(Job.created_at.desc(), Job.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_active(self, owner_id: str, kind: Optional[JobKind] = None) -> List[Job]:
        conditions = [Job.owner_id == owner_id, Job.status.in_(ACTIVE_STATUSES)]
        if kind is not None:
            conditions.append(Job.kind == JobKind(kind).value)
        result = await self._session.execute(
            select(Job).where(*conditions).order_by(Job.created_at.asc())
        )
        return list(result.scalars().all())

    async def _update_active(self, job: Job, values: Dict[str, Any]) -> bool:
        result = await self._session.execute(
            update(Job)
            .where(
                Job.id == job.id,
                Job.owner_id == job.owner_id,
                Job.status.in_(ACTIVE_STATUSES),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()
        await self._session.refresh(job)
        return result.rowcount > 0

    async def update_progress(self, job: Job, status: JobStatus, progress: Optional[int]) -> bool:
        status = JobStatus(status)
        # never step back from processing to pending
        if job.status == JobStatus.processing.value:
            status = JobStatus.processing
        values = {'status': status.value}
        if progress is not None:
            values['progress'] = max(job.progress or 0, min(100, progress))
        return await self._update_active(job, values)

    async def mark_completed(
        self,
        job: Job,
        output_url: str,
        output_stored: bool = False,
        extra: Optional[Dict[str, Any]] = None,
    ) -> bool:
        values = {
            'status': JobStatus.completed.value,
            'progress': 100,
            'output_url': output_url,
            'output_stored': output_stored,
            'completed_at': utcnow(),
        }
        for name in ('provider_voice_id', 'preview_audio_url', 'duration_ms', 'file_size_bytes'):
            if extra and extra.get(name) is not None:
                values[name] = extra[name]
        return await self._update_active(job, values)

    async def mark_failed(self, job: Job, error: str) -> bool:
        return await self._update_active(job, {
            'status': JobStatus.failed.value,
            'error_message': error,
            'completed_at': utcnow(),
        })

    async def mark_stored(self, job: Job, durable_url: str) -> bool:
        """Swap the ephemeral output for its durable copy, once."""
        result = await self._session.execute(
            update(Job)
            .where(
                Job.id == job.id,
                Job.owner_id == job.owner_id,
                Job.status == JobStatus.completed.value,
                Job.output_stored.is_(False),
            )
            .values(output_url=durable_url, output_stored=True)
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()
        await self._session.refresh(job)
        return result.rowcount > 0

    async def set_title(self, job: Job, title: Optional[str]) -> Job:
        job.title = title
        await self._session.commit()
        return job

    async def toggle_favorite(self, job: Job) -> Job:
        job.is_favorite = not job.is_favorite
        await self._session.commit()
        return job

    async def delete(self, job: Job):
        await self._session.delete(job)
        await self._session.commit()
