"""Worker URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.workers.views import WorkerViewSet

router = DefaultRouter(trailing_slash=True)
router.register("workers", WorkerViewSet, basename="worker")

urlpatterns = router.urls
