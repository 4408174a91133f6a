"""Command line interface for running the API server."""
import asyncio
import logging
import signal
import uvicorn

from config import settings_conf
from database import init_db, close as db_close

logger = logging.getLogger(__name__)

should_exit = False

def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    global should_exit
    logger.info("Shutdown signal received. Cleaning up...")
    should_exit = True

class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""
    
    def __init__(self, app_path: str = "api:app", host: str = "0.0.0.0", port: int = 3001):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            log_level=settings_conf['log_level'].lower()
        )
        self.server = uvicorn.Server(self.config)
    
    async def run(self):
        """Run the server in a way that can be stopped."""
        await self.server.serve()
    
    def stop(self):
        """Stop the server."""
        self.server.should_exit = True

async def main():
    """Initialize the database, then serve the API until interrupted."""
    # uvicorn installs its own handlers while serving
    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)
    
    try:
        logger.info("Initializing database...")
        await init_db()
        
        if should_exit:
            return
        server = UvicornServer(host=settings_conf['api_host'], port=settings_conf['api_port'])
        logger.info(f"Serving API on {settings_conf['api_host']}:{settings_conf['api_port']}")
        await server.run()
    finally:
        logger.info("Closing database connections...")
        await db_close()
        logger.info("Cleanup complete.")

if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, settings_conf['log_level'].upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(main())
