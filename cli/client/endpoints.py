"""API Endpoint Wrappers"""

from typing import Any

from .base import APIClient, VibeQueueError  # noqa: F401
from ..utils.config_manager import config


class VibeQueueClient:
    """High-level client with typed endpoint methods"""

    def __init__(self, base_url: str | None = None):
        api_config = config.load_config().get("api", {})
        final_base_url = base_url or api_config.get("base_url", "http://localhost:8000")

        self.api = APIClient(
            base_url=final_base_url,
            timeout=int(api_config.get("timeout", 30)),
        )

    def __enter__(self):
        self.api.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.api.__exit__(exc_type, exc_val, exc_tb)

    # Health Check
    def health_check(self) -> dict[str, Any]:
        """Check API health status"""
        return self.api.get("/healthz")

    # AI queue endpoints
    def get_statuses(self, job_ids: list[int]) -> list[dict[str, Any]]:
        """Batch status lookup"""
        return self.api.get(
            "/ai-queue/status", params={"ids": ",".join(str(i) for i in job_ids)}
        )

    def get_job(self, job_id: int) -> dict[str, Any]:
        """Get a single job"""
        return self.api.get(f"/ai-queue/{job_id}")

    def enqueue_job(self, type: str, model: str, prompt: str) -> dict[str, Any]:
        """Enqueue a new job"""
        return self.api.post(
            "/ai-queue", json={"type": type, "model": model, "prompt": prompt}
        )

    def process_job(self, job_id: int) -> dict[str, Any]:
        """Manually trigger a job"""
        return self.api.post(f"/ai-queue/process/{job_id}")
