from seedpipe.core.models import Registry, SeedReport, ServiceRecord, ServiceSeedResult
from seedpipe.core.services.builders.pipeline import generate_jobs

from .exceptions import SchedulerRegistrationError
from .schedulers import Scheduler


class Seeder:
    """
    Makes the scheduler's jobs match the registry.

    For every service: create the missing folder segments, then create or update
    its build and deploy jobs. Jobs already matching are left alone, jobs that do
    not belong to the registry are never touched. Safe to run again and again.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler

    async def reconcile(self, registry: Registry) -> SeedReport:
        report = SeedReport()
        report.logs.append(f"Reconciling {len(registry)} service(s)")

        for record in registry:
            result = await self.reconcile_service(record)
            report.services.append(result)
            if result.failed:
                report.logs.append(f"{record.name}: failed - {result.error}")
                report.warnings.append(
                    f"Service {record.name} was not registered, other services continue."
                )
            else:
                report.logs.append(
                    f"{record.name}: {len(result.created)} created, "
                    f"{len(result.updated)} updated, {len(result.unchanged)} unchanged"
                )

        return report

    async def reconcile_service(self, record: ServiceRecord) -> ServiceSeedResult:
        result = ServiceSeedResult(service=record.name)
        try:
            for folder in record.folder_paths():
                if await self.scheduler.ensure_folder(folder):
                    result.folders_created.append(folder)

            for job in generate_jobs(record):
                registered = await self.scheduler.get_job(job.path)
                if registered is None:
                    await self.scheduler.create_job(job)
                    result.created.append(job.path)
                elif registered != job:
                    await self.scheduler.update_job(job)
                    result.updated.append(job.path)
                else:
                    result.unchanged.append(job.path)
        except SchedulerRegistrationError as e:
            result.error = e.description
        return result
