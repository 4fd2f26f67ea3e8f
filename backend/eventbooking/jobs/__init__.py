from eventbooking.jobs.queue import Job, JobKind, JobQueue, JobStatus

__all__ = ["Job", "JobKind", "JobQueue", "JobStatus"]
