import asyncio
import sys
from pathlib import Path

from loguru import logger
from PySide6.QtCore import Slot
from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import QApplication, QMainWindow, QStatusBar, QTabWidget

from coinboard.broadcast import CryptoBroadcaster
from coinboard.catalog import DEFAULT_CRYPTOS, canonical_fiat
from coinboard.charts import ChartService
from coinboard.config import settings
from coinboard.converter import Converter, normalize_crypto
from coinboard.logging_config import setup_logging
from coinboard.polling import Poller, PollState, chart_error
from coinboard.preferences import SELECTED_CRYPTO_KEY, PreferenceStore
from coinboard.pricing import PriceService
from coinboard.sources import build_sources, create_http_client
from coinboard.types import ChartResponse, CryptoPrice
from coinboard.ui.icons import CoinIconCache
from coinboard.ui.qt_asyncio_integration import run_with_asyncio
from coinboard.ui.views.chart_view import ChartView
from coinboard.ui.views.converter_view import ConverterView
from coinboard.ui.views.halving_view import HalvingView
from coinboard.ui.views.selector_dialog import CoinSelectorDialog, CurrencySelectorDialog


class MainWindow(QMainWindow):
    """The main application window: chart, converter and halving tabs."""

    def __init__(self, preferences: PreferenceStore) -> None:
        super().__init__()
        self._locale = settings.general.locale
        self._preferences = preferences
        self._tasks: set[asyncio.Task[None]] = set()
        self._crypto_subscription_id: int | None = None
        self._crypto_sync_task: asyncio.Task[None] | None = None

        # --- Initialize Core Components ---
        self._http_client = create_http_client(settings.api.history_timeout_s)
        self._sources = build_sources(self._http_client, settings)
        self._prices = PriceService(self._sources)
        self._charts = ChartService(
            self._sources,
            locale=self._locale,
            placeholder_on_failure=settings.charts.placeholder_on_failure,
        )
        self._icons = CoinIconCache(self._http_client)
        self._broadcaster = CryptoBroadcaster()
        self._converter = Converter(
            preferences=preferences, broadcaster=self._broadcaster
        )

        stored = preferences.get(SELECTED_CRYPTO_KEY)
        self._crypto = normalize_crypto(
            stored if isinstance(stored, str) and stored.strip()
            else settings.general.default_crypto
        )
        self._currency = canonical_fiat(settings.general.default_currency)

        self._setup_ui()

        refresh = settings.refresh
        self._price_poller: Poller[CryptoPrice] = Poller(
            lambda: self._prices.get_crypto_price(self._crypto, self._currency),
            refresh.price_interval_s,
            on_update=self._on_price_update,
            name="price",
        )
        self._chart_poller: Poller[ChartResponse] = Poller(
            lambda: self._charts.get_historical_data(
                self._crypto, self._currency, self._chart_view.period
            ),
            refresh.chart_interval_s,
            validate=chart_error,
            on_update=self._on_chart_update,
            name="chart",
        )
        self._converter_poller: Poller[CryptoPrice] = Poller(
            lambda: self._prices.get_crypto_price(
                self._converter.crypto, self._converter.fiat
            ),
            refresh.converter_interval_s,
            on_update=self._on_converter_update,
            name="converter",
        )

    def _setup_ui(self) -> None:
        self.setWindowTitle("Coinboard")
        self.resize(1100, 720)

        tabs = QTabWidget(self)
        self._chart_view = ChartView(
            self, period=settings.charts.default_period, locale=self._locale
        )
        self._chart_view.set_pair(self._crypto, self._currency)
        self._chart_view.period_changed.connect(self._on_period_changed)
        self._converter_view = ConverterView(
            self._converter, self, self._locale, icons=self._icons
        )
        self._converter_view.crypto_requested.connect(self._on_converter_crypto)
        self._converter_view.fiat_requested.connect(self._on_converter_fiat)
        self._halving_view = HalvingView(self, self._locale)

        tabs.addTab(self._chart_view, "Chart")
        tabs.addTab(self._converter_view, "Converter")
        tabs.addTab(self._halving_view, "Halving")
        self.setCentralWidget(tabs)

        self.setStatusBar(QStatusBar(self))

        file_menu = self.menuBar().addMenu("&File")
        coin_action = QAction("Select &Coin...", self)
        coin_action.triggered.connect(self._on_chart_crypto)
        file_menu.addAction(coin_action)
        currency_action = QAction("Select C&urrency...", self)
        currency_action.triggered.connect(self._on_chart_currency)
        file_menu.addAction(currency_action)
        file_menu.addSeparator()
        exit_action = QAction("E&xit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

    async def start_services(self) -> None:
        logger.info("Starting core application services...")
        self._broadcaster.start()
        sync_queue: asyncio.Queue[str] = asyncio.Queue(maxsize=16)
        self._crypto_subscription_id = await self._broadcaster.subscribe(sync_queue)
        self._crypto_sync_task = asyncio.create_task(self._crypto_sync_loop(sync_queue))
        self._spawn(self._load_icons([self._converter.crypto, *DEFAULT_CRYPTOS]))
        if not self._sources:
            self.statusBar().showMessage(
                "All price sources are disabled; enable one in config.toml."
            )
        self._price_poller.start()
        self._chart_poller.start()
        self._converter_poller.start()
        logger.success("All core services started.")

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _load_icons(self, symbols: list[str]) -> None:
        await self._icons.prefetch(symbols)
        self._converter_view.refresh()

    # --- Poller callbacks ---

    def _on_price_update(self, state: PollState[CryptoPrice]) -> None:
        self._chart_view.set_price(state.data, state.error)

    def _on_chart_update(self, state: PollState[ChartResponse]) -> None:
        if state.data is not None:
            self._chart_view.set_chart(state.data)
        if state.error:
            self.statusBar().showMessage(state.error, 10_000)

    def _on_converter_update(self, state: PollState[CryptoPrice]) -> None:
        rate = state.data.current_price if state.data and not state.error else None
        self._converter_view.set_rate(rate)

    # --- Selection flows ---

    @Slot(str)
    def _on_period_changed(self, period: str) -> None:
        self.statusBar().showMessage(f"Loading {period} chart...", 3000)
        self._spawn(self._chart_poller.refetch())

    @Slot()
    def _on_chart_crypto(self) -> None:
        self._spawn(self._select_crypto_flow(for_converter=False))

    @Slot()
    def _on_converter_crypto(self) -> None:
        self._spawn(self._select_crypto_flow(for_converter=True))

    async def _select_crypto_flow(self, for_converter: bool) -> None:
        self.statusBar().showMessage("Fetching available coins...")
        symbols = await self._prices.get_supported_cryptos()
        self.statusBar().clearMessage()
        coin = CoinSelectorDialog.get_coin(symbols, self, self._icons)
        if not coin:
            return
        if for_converter:
            await self._converter_view.change_crypto(coin)
            self._spawn(self._load_icons([coin]))
            await self._converter_poller.refetch()
        else:
            self._broadcaster.broadcast_crypto(coin)

    @Slot()
    def _on_chart_currency(self) -> None:
        currency = CurrencySelectorDialog.get_currency(self)
        if currency:
            self._currency = canonical_fiat(currency)
            self._reload_chart_tab()

    @Slot()
    def _on_converter_fiat(self) -> None:
        currency = CurrencySelectorDialog.get_currency(self)
        if currency:
            self._converter_view.change_fiat(currency)
            self._spawn(self._converter_poller.refetch())

    def _reload_chart_tab(self) -> None:
        self._chart_view.set_pair(self._crypto, self._currency)
        self._spawn(self._price_poller.refetch())
        self._spawn(self._chart_poller.refetch())

    async def _crypto_sync_loop(self, queue: "asyncio.Queue[str]") -> None:
        """Keeps the chart tab on the coin last chosen anywhere in the app."""
        try:
            while True:
                crypto = normalize_crypto(await queue.get())
                if crypto != self._crypto:
                    logger.info(f"Chart coin synced to {crypto}.")
                    self._crypto = crypto
                    self._reload_chart_tab()
                queue.task_done()
        except asyncio.CancelledError:
            logger.info("Crypto sync loop cancelled.")

    async def _shutdown(self) -> None:
        logger.info("Initiating graceful shutdown...")
        self.statusBar().showMessage("Shutting down...")
        for poller in (self._price_poller, self._chart_poller, self._converter_poller):
            if poller.is_running:
                await poller.stop()
        if self._crypto_sync_task:
            self._crypto_sync_task.cancel()
        if self._crypto_subscription_id is not None:
            await self._broadcaster.unsubscribe(self._crypto_subscription_id)
        await self._broadcaster.stop()
        await self._http_client.aclose()
        logger.success("Shutdown complete.")

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        logger.info("Close event triggered.")
        event.accept()
        asyncio.create_task(self._shutdown()).add_done_callback(
            lambda _: QApplication.instance().quit()
        )


async def main_async() -> int:
    log_dir = (
        Path(settings.general.log_directory)
        if settings.general.log_directory
        else None
    )
    setup_logging(
        console_level=settings.general.log_level_console,
        file_level=settings.general.log_level_file,
        log_dir=log_dir,
    )

    preferences = PreferenceStore(
        Path(settings.preferences.path), settings.preferences.max_age_s
    )
    await preferences.load()

    main_window = MainWindow(preferences)
    main_window.show()
    await main_window.start_services()
    return 0


def main() -> None:
    try:
        exit_code = run_with_asyncio(main_async())
        sys.exit(exit_code)
    except Exception:
        logger.exception("An unhandled exception reached the top-level entry point.")
        sys.exit(1)


if __name__ == "__main__":
    main()
