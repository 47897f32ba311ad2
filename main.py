import argparse
import sys

from fastapi import FastAPI
from loguru import logger
from starlette.middleware.cors import CORSMiddleware

from api.routes import routers as v1_routers
from core.config import configs
from core.container import Container
from util.class_object import singleton


@singleton
class AppCreator:
    def __init__(self):
        # set app default
        self.app = FastAPI(
            title=configs.PROJECT_NAME,
            openapi_url=f"{configs.API}/openapi.json",
            version="0.1.0",
        )

        # set container
        self.container = Container()

        # set cors
        if configs.BACKEND_CORS_ORIGINS:
            self.app.add_middleware(
                CORSMiddleware,
                allow_origins=[str(origin) for origin in configs.BACKEND_CORS_ORIGINS],
                allow_credentials=True,
                allow_methods=["*"],
                allow_headers=["*"],
            )

        # set routes
        @self.app.get("/")
        def root():
            return "service is working"

        self.app.include_router(v1_routers, prefix=configs.API_V1_STR)


app_creator = AppCreator()
app = app_creator.app
container = app_creator.container


def main():
    """Entry point to run the uvicorn server."""
    import uvicorn

    parser = argparse.ArgumentParser(description="Serve git history, diffs and authorship over HTTP")
    parser.add_argument("repo_path", nargs="?", default=None, help="Repository to serve (defaults to REPO_PATH)")
    parser.add_argument("--host", default=configs.HOST)
    parser.add_argument("--port", type=int, default=configs.PORT)
    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=configs.LOG_LEVEL)

    if args.repo_path:
        container.repository_holder().switch(args.repo_path)

    logger.info(f"Starting {configs.PROJECT_NAME} on http://{args.host}:{args.port}")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        reload=False,
        log_level=configs.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
