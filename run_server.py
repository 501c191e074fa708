"""Run the FastAPI server with Windows-compatible event loop."""
import sys
import asyncio

if sys.platform == 'win32':
    # Set the event loop policy before uvicorn starts
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

if __name__ == "__main__":
    import uvicorn
    from portfolio_ledger.core.config import settings

    uvicorn.run(
        "portfolio_ledger.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        loop="asyncio"
    )
