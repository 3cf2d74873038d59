import logging

from budgetup.config import settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    # uvicorn reloads call create_app more than once
    if any(getattr(h, "_budgetup", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._budgetup = True  # type: ignore[attr-defined]
    root.addHandler(handler)
