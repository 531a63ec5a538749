import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool

from . import config
from .control import router as control_router
from .cycle import CycleDriver, CycleTrigger, PlaceholderGenerator, start_console_reader
from .errors import (
    ArtVoteError,
    ConfigError,
    DuplicateVoteError,
    MalformedRequestError,
    StaleIterationError,
)
from .models import IterationOut
from .service import VoteService
from .state import IterationCounter, VoteLedger

logging.basicConfig(
    level=logging.DEBUG if config.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

TRIGGERS = ("console", "timer", "manual")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: cycle driver in the background
    state = app.state
    state.trigger.bind(asyncio.get_running_loop())
    if state.cycle_enabled:
        if state.cycle_trigger == "console":
            start_console_reader(state.trigger)
        state.cycle_task = asyncio.create_task(state.driver.run())

    logger.info(f"Current iteration: {state.counter.get()}")
    logger.info("Serving images at /images/<iteration>/<image>")
    logger.info("Serving iteration at /iteration")
    logger.info("Accepting votes at /vote")
    yield

    # Shutdown: stop the cycle
    task = state.cycle_task
    if task is not None:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


async def request_error_handler(request: Request, exc: ArtVoteError):
    logger.warning(str(exc))
    return PlainTextResponse(str(exc), status_code=400)


def create_app(
    iteration_file: str = config.ITERATION_FILE,
    images_dir: str = config.IMAGES_DIR,
    source_images: str = config.SOURCE_IMAGES,
    images_per_iteration: int = config.IMAGES_PER_ITERATION,
    cycle_enabled: bool = config.CYCLE_ENABLED,
    cycle_trigger: str = config.CYCLE_TRIGGER,
    cycle_interval: float = config.CYCLE_INTERVAL,
    reset_votes_on_advance: bool = config.RESET_VOTES_ON_ADVANCE,
    enforce_iteration: bool = config.ENFORCE_ITERATION,
    generator=None,
) -> FastAPI:
    """
    Build the voting app. Raises ConfigError if the iteration file is
    corrupt or the trigger mode is unknown.
    """
    if cycle_trigger not in TRIGGERS:
        raise ConfigError(
            f"CYCLE_TRIGGER must be one of {', '.join(TRIGGERS)}, got {cycle_trigger!r}"
        )

    counter = IterationCounter.load(iteration_file)
    ledger = VoteLedger()
    trigger = CycleTrigger()
    driver = CycleDriver(
        counter,
        ledger,
        trigger,
        generator=generator or PlaceholderGenerator(images_per_iteration),
        images_dir=images_dir,
        source_images=source_images,
        reset_votes_on_advance=reset_votes_on_advance,
        interval=cycle_interval if cycle_trigger == "timer" else None,
        prompt="Press enter to move to the next iteration" if cycle_trigger == "console" else None,
    )

    app = FastAPI(title="Art Iteration Voting", lifespan=lifespan)
    app.state.counter = counter
    app.state.ledger = ledger
    app.state.trigger = trigger
    app.state.driver = driver
    app.state.service = VoteService(counter, ledger, enforce_iteration=enforce_iteration)
    app.state.cycle_enabled = cycle_enabled
    app.state.cycle_trigger = cycle_trigger
    app.state.cycle_task = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    for exc_type in (MalformedRequestError, DuplicateVoteError, StaleIterationError):
        app.add_exception_handler(exc_type, request_error_handler)

    app.include_router(control_router)
    app.mount(
        "/images",
        StaticFiles(directory=images_dir, check_dir=False),
        name="images",
    )

    @app.get("/iteration")
    def get_iteration(request: Request) -> IterationOut:
        return IterationOut(iteration=str(request.app.state.service.get_iteration()))

    @app.post("/vote")
    async def vote(request: Request):
        body = await request.body()
        logger.debug(f"content: {body!r}")
        await run_in_threadpool(request.app.state.service.submit_vote, body)
        return Response(status_code=200)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("artvote.main:app", host=config.HOST, port=config.PORT, log_level="info")
