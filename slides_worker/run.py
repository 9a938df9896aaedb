import logging
import signal
import sys

from .config import WorkerConfig
from .http_server import ProcessingServer
from .logging_setup import setup_logging, log_exception

logger = logging.getLogger("slides_worker")


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    logger.info(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def main():
    """Main entry point for the processing server"""
    # Setup signal handlers
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    config = WorkerConfig.from_env()
    setup_logging(config.LOG_LEVEL, config.LOG_DIR)

    try:
        config.validate()
        server = ProcessingServer(config)
    except Exception as e:
        log_exception(logger, f"Server failed to start: {str(e)}")
        sys.exit(1)

    server.start()
    logger.info("Server stopped")


if __name__ == "__main__":
    main()
