"""Worker repositories package."""

from modules.workers.repositories.django_repository import WorkerDjangoRepository
from modules.workers.repositories.interfaces import IWorkerRepository

__all__ = ["IWorkerRepository", "WorkerDjangoRepository"]
