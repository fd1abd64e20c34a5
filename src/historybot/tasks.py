import asyncio
import os
import time
from inspect import signature

from celery import Celery
from celery.utils.log import get_task_logger

from historybot.text_generators import get_text_generator

logger = get_task_logger(__name__)

celery_app = Celery(
    "tasks",
    broker=os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0"),
    backend=os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/0"),
)

celery_app.conf.task_routes = {
    "tasks.generate_text": {"queue": "text"},
}


@celery_app.task(name="tasks.generate_text", queue="text")
def generate_text(
    api: str,
    model: str,
    prompt: str,
    temperature: float = 0.7,
) -> str:
    """Generate summary text on a worker with detailed logging."""
    start = time.monotonic()
    logger.info(
        "generate_text START | api=%s model=%s temp=%.2f prompt_len=%d",
        api,
        model,
        temperature,
        len(prompt),
    )

    try:
        generator = get_text_generator(api, model)
        gen_sig = signature(generator.generate)
        if "temperature" in gen_sig.parameters:
            text = asyncio.run(generator.generate(prompt, temperature=temperature))
        else:
            text = asyncio.run(generator.generate(prompt))
    except Exception as exc:  # noqa: BLE001
        duration = time.monotonic() - start
        logger.exception("generate_text FAILED after %.2fs | %s", duration, exc)
        raise

    duration = time.monotonic() - start
    logger.info(
        "generate_text FINISH in %.2fs | output_len=%d",
        duration,
        len(text),
    )
    return text
