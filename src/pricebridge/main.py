# src/pricebridge/main.py
import argparse
import asyncio
import sys

import structlog
from dotenv import load_dotenv

from pricebridge.config import MODES, BridgeConfig, ConfigError, config_from_env
from pricebridge.alerts.notifiers import PriceNotifier
from pricebridge.ingest.chain import PriceReader, PriceReaderConfig
from pricebridge.ingest.chain_ws import ChainLogStream, ChainWSConfig
from pricebridge.ingest.poller import PricePoller, PollerConfig
from pricebridge.notify.webhook import WebhookConfig, WebhookPublisher
from pricebridge.utils.logging import configure_logging
from storage.state_file import load_state

log = structlog.get_logger()


async def main(cfg: BridgeConfig, once: bool = False) -> None:
    state = load_state(cfg.data_file)

    reader = PriceReader(PriceReaderConfig(rpc_url=cfg.rpc_url, contract_address=cfg.contract_address))

    async with WebhookPublisher(WebhookConfig(url=cfg.webhook_url, timeout_s=cfg.webhook_timeout_s)) as publisher:
        notifier = PriceNotifier(publisher, state, cfg.data_file)

        if once:
            poller = PricePoller(reader, notifier.publish_if_changed)
            await poller.poll_once()
            return

        if cfg.mode == "events":
            assert cfg.ws_url is not None
            runner = ChainLogStream(
                ChainWSConfig(
                    ws_url=cfg.ws_url,
                    contract_address=cfg.contract_address,
                    reconnect_delay_s=cfg.reconnect_delay_s,
                ),
                reader,
                notifier.publish_price,
            )
            log.info("bot_started", mode="events", address=cfg.contract_address)
        else:
            runner = PricePoller(reader, notifier.publish_if_changed, PollerConfig(interval_s=cfg.poll_interval_s))
            log.info("bot_started", mode="poll", interval_s=cfg.poll_interval_s, address=cfg.contract_address)

        try:
            await runner.start()
        finally:
            await runner.stop()


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="pricebridge", description="Mirror the on-chain SPLOSH price into a chat webhook message.")
    p.add_argument("--mode", choices=MODES, default=None, help="override BRIDGE_MODE (default: poll)")
    p.add_argument("--once", action="store_true", help="run a single poll cycle and exit")
    return p.parse_args(argv)


def cli(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv()
    try:
        cfg = config_from_env(mode=args.mode)
    except ConfigError as e:
        configure_logging()
        log.error("config_error", err=str(e))
        return 1

    configure_logging(cfg.log_level, json=cfg.log_json)
    try:
        asyncio.run(main(cfg, once=args.once))
    except KeyboardInterrupt:
        log.info("bot_stopped")
    return 0


if __name__ == "__main__":
    sys.exit(cli())
