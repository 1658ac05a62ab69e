import asyncio
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from storefront.jobs.models import Job, JobKind, JobLog, JobStatus

logger = logging.getLogger(__name__)


class JobFailedError(RuntimeError):
    def __init__(self, job: Job):
        super().__init__(f"Job {job.id} ({job.kind.value} {', '.join(job.names)}) failed")
        self.job = job


class JobManager:
    """Runs package operations as subprocess jobs tracked by app name."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def get_job(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        return list(self._jobs.values())

    def find_active(self, name: str) -> Optional[Job]:
        for job in self._jobs.values():
            if job.active and name in job.names:
                return job
        return None

    def create_job(self, kind: JobKind, names: List[str], command: List[str]) -> str:
        job_id = str(uuid.uuid4())
        self._jobs[job_id] = Job(id=job_id, kind=kind, names=names, command=command)

        # Start execution in background
        self._tasks[job_id] = asyncio.create_task(self._run_job(job_id))
        return job_id

    async def wait(self, job_id: str) -> Job:
        """Wait for a job to finish; raise ``JobFailedError`` if it did not succeed."""
        job = self._jobs.get(job_id)
        if not job:
            raise ValueError(f"Job {job_id} not found")

        task = self._tasks.get(job_id)
        if task:
            await task
        if job.status != JobStatus.COMPLETED:
            raise JobFailedError(job)
        return job

    async def _run_job(self, job_id: str):
        job = self._jobs[job_id]
        job.status = JobStatus.RUNNING

        logger.info(f"Starting job {job_id}: {' '.join(job.command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *job.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )

            async def read_stream(stream, is_error):
                while True:
                    line = await stream.readline()
                    if not line:
                        break
                    decoded_line = line.decode("utf-8", errors="replace").rstrip()
                    job.logs.append(
                        JobLog(timestamp=datetime.now(), output=decoded_line, error=is_error)
                    )

            # Run stdout and stderr readers concurrently
            await asyncio.gather(
                read_stream(process.stdout, False),
                read_stream(process.stderr, True),
            )

            exit_code = await process.wait()
            job.exit_code = exit_code
            job.status = JobStatus.COMPLETED if exit_code == 0 else JobStatus.FAILED
        except Exception as e:
            logger.error(f"Error executing job {job_id}: {e}")
            job.status = JobStatus.FAILED
            job.logs.append(
                JobLog(timestamp=datetime.now(), output=f"Internal Error: {e}", error=True)
            )
        finally:
            job.finished_at = datetime.now()
            self._tasks.pop(job_id, None)
