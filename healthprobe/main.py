import logging
import sys
from collections.abc import Sequence
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from healthprobe.api_schemas import HealthCheckResponse
from healthprobe.config import ConfigError, build_parser, parse_args, parse_bind
from healthprobe.runner import CheckRunner
from healthprobe.scheduler import CheckScheduler, ScheduleExpressionError
from healthprobe.state import ResultStore

logger = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL = "info"

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


def configure_logging(level_name: str) -> int:
    logging.basicConfig(
        level=LOG_LEVELS[DEFAULT_LOG_LEVEL],
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    root = logging.getLogger()

    level = LOG_LEVELS.get(level_name.strip().lower())
    if level is None:
        logger.warning("Invalid log level %s, using default %s", level_name, DEFAULT_LOG_LEVEL)
        level = LOG_LEVELS[DEFAULT_LOG_LEVEL]
    root.setLevel(level)

    # APScheduler logs every job execution at INFO.
    logging.getLogger("apscheduler").setLevel(
        logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    )
    logger.debug("Log level set to %s", logging.getLevelName(level))
    return level


def create_app(
    store: ResultStore,
    resource_name: str = "/health",
    scheduler: CheckScheduler | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if scheduler is not None:
            scheduler.start()
        yield
        if scheduler is not None:
            logger.info("Shutting down, stopping health check scheduler")
            scheduler.stop()

    app = FastAPI(
        title="healthprobe",
        version="1.0.0",
        description=(
            "Runs a health check command on a schedule and serves the latest "
            "result. The status code carries the verdict: 200 healthy, 500 not."
        ),
        lifespan=lifespan,
    )

    def health() -> JSONResponse:
        result = store.load()
        body = HealthCheckResponse(command=result.command, timestamp=result.timestamp)
        return JSONResponse(
            status_code=200 if result.success else 500,
            content=body.model_dump(),
        )

    app.add_api_route(
        resource_name,
        health,
        methods=["GET"],
        response_model=HealthCheckResponse,
        responses={500: {"model": HealthCheckResponse, "description": "Last health check failed or has not run yet"}},
        tags=["system"],
        summary="Health Check",
        description="Latest cached health check result; never triggers a check.",
    )
    return app


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    try:
        cfg = parse_args(argv, parser=parser)
    except ConfigError as exc:
        print(f"healthprobe: {exc}", file=sys.stderr)
        parser.print_help(sys.stderr)
        sys.exit(1)

    level = configure_logging(cfg.LOG_LEVEL)

    store = ResultStore()
    runner = CheckRunner(store)
    try:
        scheduler = CheckScheduler(
            cfg.PERIODICITY,
            runner.run_once,
            args=(cfg.COMMAND, cfg.TIMEOUT),
        )
    except ScheduleExpressionError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    host, port = parse_bind(cfg.BIND)
    app = create_app(store, resource_name=cfg.RESOURCE_NAME, scheduler=scheduler)

    logger.info("Starting healthprobe, listening on %s", cfg.BIND)
    logger.info("Healthcheck resource name is %s", cfg.RESOURCE_NAME)

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=logging.getLevelName(level).lower(),
    )


if __name__ == "__main__":
    main()
