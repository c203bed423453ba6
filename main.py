"""
Main entrypoint: SafeSend check API served by uvicorn.

Env: ALCHEMY_SEPOLIA_RPC (required for /check), BADLIST_ADDRESSES, WATCHLIST_ADDRESSES,
BAD_ENS_ADDRS, BAD_ENS_NAMES, DUST_THRESHOLD_ETH, API_HOST, API_PORT, LOG_LEVEL.

Equivalent: uvicorn backend_safesend.api_server.app:app --host 0.0.0.0 --port 8000
"""

from backend_safesend.config import get_settings
from backend_safesend.safesend_logging import configure_logging, get_logger

logger = get_logger("main")


def main() -> None:
    """Validate configuration and run the FastAPI server in the main thread."""
    settings = get_settings()
    configure_logging(settings.log_level)
    if not settings.rpc_url:
        # /health still works; /check answers 500 missing_rpc_url until configured
        logger.warning("main_config_missing_rpc_url", env="ALCHEMY_SEPOLIA_RPC")

    logger.info(
        "main_config_loaded",
        chain=settings.chain,
        blocklist_size=len(settings.blocklist),
        watchlist_size=len(settings.watchlist),
        dust_threshold_eth=settings.dust_threshold_eth,
    )

    from backend_safesend.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
