"""Main market radar application."""

import asyncio
import logging
import signal
import sys
from typing import Dict, Optional
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

from .core.models import FilterCriteria, RadarSnapshot
from .data.connector import CoinMarketCapConnector
from .data.credentials import ChainedCredentialProvider, EnvCredentialProvider, FileCredentialProvider
from .monitoring.request_log import RequestLog
from .scanner.orchestrator import FetchOrchestrator

logger = logging.getLogger(__name__)


def _configure_logging(level: str = 'INFO'):
    """Configure root logging for the console application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('market_radar.log'),
            logging.StreamHandler(sys.stdout)
        ]
    )


class RadarApp:
    """Console market radar: monitors listings and logs the top of the ranking."""

    def __init__(self, config: Optional[Dict] = None):
        """Initialize radar application."""
        defaults = self._default_config()
        if config:
            for key, val in config.items():
                if isinstance(val, dict) and key in defaults and isinstance(defaults[key], dict):
                    defaults[key].update(val)
                else:
                    defaults[key] = val
        self.config = defaults
        self._stopped: Optional[asyncio.Event] = None
        self._unsubscribe = None
        self._last_logged_cycle: Optional[int] = None

        self._init_components()
        logger.info("Market radar initialized")

    @staticmethod
    def _default_config() -> Dict:
        """Default configuration."""
        return {
            'api': {
                'base_url': 'https://pro-api.coinmarketcap.com/v1',
                'timeout': 30,
                'convert': 'USD',
                'api_key_env': 'COINMARKETCAP_API_KEY',
                'key_file': '.market_radar_key.json',
            },
            'scanner': {
                'limit': 500,
                'refresh_interval_minutes': 5,
                'batch_size': 100,
            },
            'filters': {
                'min_volume': 1_000_000,  # USD
                'min_price_change': -50,
                'max_price_change': 50,
                'min_price_change_per_minute': -10,
                'max_price_change_per_minute': 10,
            },
            'request_log': {
                'max_entries': 100,
            },
            'display': {
                'top_n': 20,
            },
            'log_level': 'INFO',
        }

    def _init_components(self):
        """Initialize all radar components."""
        api_cfg = self.config['api']
        scanner_cfg = self.config['scanner']

        self.request_log = RequestLog(max_entries=self.config['request_log']['max_entries'])

        # Stored key wins over the environment
        self.credentials = ChainedCredentialProvider(
            FileCredentialProvider(Path(api_cfg['key_file'])),
            EnvCredentialProvider(api_cfg['api_key_env']),
        )

        self.connector = CoinMarketCapConnector(
            {
                'base_url': api_cfg['base_url'],
                'timeout': api_cfg['timeout'],
                'convert': api_cfg['convert'],
            },
            request_log=self.request_log,
        )

        self.filters = FilterCriteria(**self.config['filters'])

        self.orchestrator = FetchOrchestrator(
            self.connector,
            self.credentials,
            filters=self.filters,
            config={
                'limit': scanner_cfg['limit'],
                'refresh_interval_minutes': scanner_cfg['refresh_interval_minutes'],
                'batch_size': scanner_cfg['batch_size'],
                'convert': api_cfg['convert'],
            },
        )

        logger.info("All components initialized successfully")

    async def start(self):
        """Start monitoring and block until stopped."""
        logger.info("Starting market radar...")
        self._stopped = asyncio.Event()

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._signal_handler, signum)
            except NotImplementedError:
                signal.signal(signum, lambda s, f: self._signal_handler(s))

        if not self.credentials.get():
            logger.warning(
                f"No API key configured; set {self.config['api']['api_key_env']} "
                f"or store one in {self.config['api']['key_file']}"
            )

        self._unsubscribe = self.orchestrator.subscribe(self._on_snapshot)
        await self.orchestrator.start_monitoring()
        await self._stopped.wait()

    async def stop(self):
        """Stop the radar and release resources."""
        try:
            logger.info("Stopping market radar...")
            if self._unsubscribe:
                self._unsubscribe()
                self._unsubscribe = None
            await self.orchestrator.close()
            logger.info("Market radar stopped")
        except Exception as e:
            logger.error(f"Error stopping market radar: {e}")
        finally:
            if self._stopped is not None:
                self._stopped.set()

    def _signal_handler(self, signum):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        if self._stopped is not None:
            self._stopped.set()

    def _on_snapshot(self, snapshot: RadarSnapshot):
        """Log the error or the top of every freshly published ranking."""
        if snapshot.loading:
            return
        if snapshot.error:
            logger.error(f"Refresh failed: {snapshot.error}")
            return
        if not snapshot.ranked or snapshot.cycle_id == self._last_logged_cycle:
            return
        self._last_logged_cycle = snapshot.cycle_id

        top_n = self.config['display']['top_n']
        logger.info(
            f"Ranking #{snapshot.cycle_id}: {len(snapshot.ranked)} of "
            f"{snapshot.population_size} assets pass filters"
        )
        for item in snapshot.ranked[:top_n]:
            patterns = ','.join(sorted(p.value for p in item.pattern.patterns)) or '-'
            logger.info(
                f"#{item.rank:>3} {item.asset.symbol:<10} score={item.score.total_score:6.2f} "
                f"24h={item.asset.percent_change_24h:+7.2f}% "
                f"vol_z={item.asset.volume_z_score:+.2f} "
                f"anomaly={item.anomaly.overall_severity.value} patterns={patterns}"
            )

    def get_status(self) -> Dict:
        """Get radar status."""
        snapshot = self.orchestrator.snapshot()
        return {
            'monitoring': snapshot.monitoring,
            'state': snapshot.state.value,
            'loading': snapshot.loading,
            'error': snapshot.error,
            'last_update': snapshot.last_update.isoformat() if snapshot.last_update else None,
            'ranked_assets': len(snapshot.ranked),
            'population_size': snapshot.population_size,
            'api_key_configured': self.credentials.get() is not None,
            'requests': self.request_log.get_stats(),
        }


def _config_from_env() -> Dict:
    """Build config dict from environment variables."""
    config: Dict = {}

    # Scanner
    limit = os.getenv('RADAR_LIMIT', '').strip()
    interval = os.getenv('RADAR_REFRESH_MINUTES', '').strip()
    batch_size = os.getenv('RADAR_BATCH_SIZE', '').strip()
    if limit or interval or batch_size:
        config['scanner'] = {}
        if limit:
            config['scanner']['limit'] = int(limit)
        if interval:
            config['scanner']['refresh_interval_minutes'] = float(interval)
        if batch_size:
            config['scanner']['batch_size'] = int(batch_size)

    # Filters
    filter_env = {
        'min_volume': 'RADAR_MIN_VOLUME',
        'min_price_change': 'RADAR_MIN_PRICE_CHANGE',
        'max_price_change': 'RADAR_MAX_PRICE_CHANGE',
        'min_price_change_per_minute': 'RADAR_MIN_MINUTE_CHANGE',
        'max_price_change_per_minute': 'RADAR_MAX_MINUTE_CHANGE',
    }
    for key, env_name in filter_env.items():
        raw = os.getenv(env_name, '').strip()
        if not raw:
            continue
        config.setdefault('filters', {})
        # "none" removes the bound
        config['filters'][key] = None if raw.lower() == 'none' else float(raw)

    # API
    key_file = os.getenv('RADAR_KEY_FILE', '').strip()
    if key_file:
        config['api'] = {'key_file': key_file}

    # Display
    top_n = os.getenv('RADAR_TOP_N', '').strip()
    if top_n:
        config['display'] = {'top_n': int(top_n)}

    log_level = os.getenv('RADAR_LOG_LEVEL', '').strip()
    if log_level:
        config['log_level'] = log_level

    return config


async def main():
    """Main entry point."""
    config = _config_from_env()
    _configure_logging(config.get('log_level', 'INFO'))

    app = RadarApp(config if config else None)

    try:
        await app.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
    finally:
        await app.stop()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
