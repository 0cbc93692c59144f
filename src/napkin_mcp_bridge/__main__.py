import sys

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from napkin_mcp_bridge.api.http_app import create_app
from napkin_mcp_bridge.app_config import apply_env_overrides, load_json_config, parse_app_config, resolve_runtime_env
from napkin_mcp_bridge.bootstrap import build_runtime
from napkin_mcp_bridge.logging_config import setup_logging

_UVICORN_LEVELS = {"critical", "error", "warning", "info", "debug", "trace"}


def main() -> None:
    load_dotenv()

    app_config = parse_app_config(load_json_config())
    env = resolve_runtime_env()
    apply_env_overrides(app_config, env)

    log_descriptions = setup_logging(level=app_config.log_level, consumers=app_config.log_consumers)

    if not env.napkin_api_key:
        logger.error("NAPKIN_API_KEY environment variable is required.")
        sys.exit(1)

    runtime = build_runtime(app_config, env)
    app = create_app(runtime)

    logger.info(f"Napkin MCP bridge running on port {app_config.port}")
    logger.info("MCP endpoint: /mcp")
    logger.info("SSE endpoint: /sse")
    logger.info(f"Tools: {', '.join(runtime.dispatcher.tool_names)}")
    if env.public_base_url:
        logger.info(f"Download links use base URL {env.public_base_url}")
    if log_descriptions:
        logger.info(f"Logging: {', '.join(log_descriptions)}")

    uvicorn_level = app_config.log_level.lower()
    if uvicorn_level not in _UVICORN_LEVELS:
        uvicorn_level = "info"
    uvicorn.run(app, host=app_config.host, port=app_config.port, log_level=uvicorn_level)


if __name__ == "__main__":
    main()
