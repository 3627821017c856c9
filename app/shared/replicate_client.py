import asyncio
import logging
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from app.core.config import settings
from app.shared.errors import ModelError, UpstreamTimeoutError

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("succeeded", "failed", "canceled")

IMAGE_INPUT = {
    "width": 768,
    "height": 768,
    "num_outputs": 1,
    "scheduler": "K_EULER",
    "num_inference_steps": 25,
    "guidance_scale": 7.5,
    "refine": "expert_ensemble_refiner",
    "high_noise_frac": 0.8,
    "prompt_strength": 0.8,
    "apply_watermark": False,
}


class ReplicateClient:
    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ):
        self.api_token = api_token if api_token is not None else settings.replicate_api_token
        self.base_url = (base_url or settings.replicate_api_url).rstrip("/")
        self.timeout = timeout or settings.replicate_timeout
        self.poll_interval = poll_interval or settings.replicate_poll_interval

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}"}

    async def _call(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = await client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError("Model request timed out") from e
        except httpx.HTTPError as e:
            logger.error("Replicate %s %s failed: %s", method, url, e)
            raise ModelError(f"Model request failed: {e}") from e

    async def run(self, version: str, model_input: Dict[str, Any]) -> Any:
        """
        Create a prediction and wait for it to finish.

        Returns the prediction output; raises ModelError on a failed or
        canceled prediction and UpstreamTimeoutError past ``timeout``.
        """
        if not self.api_token:
            raise ModelError("Replicate API token is not configured")

        deadline = time.monotonic() + self.timeout
        headers = {**self._auth_headers(), "Prefer": "wait"}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            prediction = await self._call(
                client,
                "POST",
                f"{self.base_url}/predictions",
                headers=headers,
                json={"version": version, "input": model_input},
            )
            logger.info("Prediction created: %s", prediction.get("id"))

            while prediction.get("status") not in TERMINAL_STATUSES:
                if time.monotonic() >= deadline:
                    raise UpstreamTimeoutError("Model prediction timed out")
                await asyncio.sleep(self.poll_interval)
                get_url = (prediction.get("urls") or {}).get("get") or (
                    f"{self.base_url}/predictions/{prediction.get('id')}"
                )
                prediction = await self._call(
                    client, "GET", get_url, headers=self._auth_headers()
                )

        if prediction["status"] != "succeeded":
            raise ModelError(
                prediction.get("error") or "Prediction failed",
                details={"status": prediction["status"]},
            )
        return prediction.get("output")

    async def generate_image(self, prompt: str) -> str:
        """Run the image model and return the URL of the first output."""
        output = await self.run(
            settings.image_model_version, {**IMAGE_INPUT, "prompt": prompt}
        )
        image_url = output[0] if isinstance(output, list) and output else output
        if not isinstance(image_url, str) or not image_url.startswith("http"):
            logger.error("Invalid image URL: %r", image_url)
            raise ModelError("Invalid image URL received from the model")
        return image_url

    async def download_image(self, url: str) -> Tuple[bytes, str]:
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            try:
                resp = await client.get(url)
                resp.raise_for_status()
            except httpx.TimeoutException as e:
                raise UpstreamTimeoutError("Image download timed out") from e
            except httpx.HTTPError as e:
                raise ModelError(f"Failed to fetch generated image: {e}") from e
        content_type = resp.headers.get("content-type", "image/png").split(";")[0]
        return resp.content, content_type

    async def chat(self, prompt: str, system_prompt: str) -> str:
        if not settings.chat_model_version:
            raise ModelError("Chat model is not configured")
        output = await self.run(
            settings.chat_model_version,
            {"prompt": prompt, "system_prompt": system_prompt, "max_new_tokens": 256},
        )
        # Language models stream tokens as a list of strings
        reply = "".join(output) if isinstance(output, list) else str(output or "")
        if not reply.strip():
            raise ModelError("Empty reply from the chat model")
        return reply.strip()


def get_replicate_client() -> ReplicateClient:
    return ReplicateClient()
