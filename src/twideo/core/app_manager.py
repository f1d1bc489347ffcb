import asyncio
import signal
import sys
from collections.abc import Sequence
from contextlib import AsyncExitStack, suppress
from typing import Any

import aioconsole

from ..interfaces.app_manager import BaseAppManager
from ..interfaces.base_manager import BaseManager
from ..interfaces.update_handler import BaseUpdateHandler
from ..models import DeliveryOutcome
from ..utils.log import log
from .event_system import (
    AppStartEvent,
    AppStopEvent,
    Event,
    EventManager,
    HealthCheckRequestEvent,
    UserInputReceivedEvent,
)
from .health_monitor import HealthMonitor
from .settings_manager import SettingsManager

CONFIG_POLL_SECONDS = 5.0


class AppManager(BaseAppManager):
    def __init__(
        self,
        managers: Sequence[BaseManager],
        update_handler: BaseUpdateHandler,
        event_manager: EventManager,
    ) -> None:
        self._managers = managers
        self._update_handler = update_handler
        self._event_manager = event_manager
        self._stop_app_event = asyncio.Event()
        self._settings_manager = SettingsManager()
        self._health_monitor = HealthMonitor()
        self._event_handlers_registered = False

    async def _handle_user_input(self, event: Event) -> None:
        """Handle user input event."""
        command = event.data.get("command", "")

        if command.strip().lower() == "health":
            log("🩺 Запрос проверки состояния...", padding_top=1)
            await self._event_manager.emit(HealthCheckRequestEvent())
        elif command.strip():
            log(f"⌨️ Неизвестная команда: {command.strip()!r}. Доступно: health", padding_top=1)

    async def _handle_health_check_request(self, event: Event) -> None:
        """Handle health check request event."""
        results = await self._health_monitor.check_health()
        log("🩺 Результаты проверки состояния:", padding_top=1)
        for name, result in results.items():
            status = result.get("status", "error")
            message = result.get("message", "No message")
            log(f"  - {name}: {status.upper()} ({message})")
        log("📊 Доставка с момента запуска:")
        for outcome, count in self._health_monitor.delivery_summary().items():
            log(f"  - {outcome}: {count}")

    async def _handle_delivery_complete(self, event: Event) -> None:
        """Count delivery outcomes for the health report."""
        outcome = event.data.get("outcome")
        if isinstance(outcome, DeliveryOutcome):
            self._health_monitor.record_outcome(outcome)

    async def _input_watcher(self) -> None:
        """Asynchronously waits for user input and emits events."""
        while not self._stop_app_event.is_set():
            try:
                command = await aioconsole.ainput()
                if self._stop_app_event.is_set():
                    break

                await self._event_manager.emit(UserInputReceivedEvent(command))
            except (asyncio.CancelledError, EOFError):
                break
            except Exception as e:
                if not self._stop_app_event.is_set():
                    log(f"⚠️ Ошибка в input_watcher: {type(e).__name__}: {e}")

    async def _apply_settings_changes(self) -> None:
        """Pushes a changed config.yaml to the managers and the update handler."""
        new_settings = self._settings_manager.reload_if_changed()
        if new_settings is None:
            return
        for manager in self._managers:
            await manager.update_config(new_settings)
        self._update_handler.configure(new_settings)

    async def _config_watcher(self) -> None:
        """Polls config.yaml until the application stops."""
        while not self._stop_app_event.is_set():
            try:
                await self._apply_settings_changes()
            except Exception as e:
                log(f"⚠️ Ошибка при применении новой конфигурации: {type(e).__name__}: {e}")

            wait_stop = asyncio.create_task(self._stop_app_event.wait())
            delay_task = asyncio.create_task(asyncio.sleep(CONFIG_POLL_SECONDS))
            _, pending = await asyncio.wait([wait_stop, delay_task], return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task

    def _shutdown_handler(self, signum: int, frame: Any) -> None:
        loop = asyncio.get_running_loop()
        loop.call_soon_threadsafe(self._stop_app_event.set)
        log(f"🛑 Перехвачен сигнал {signum}, начинаю остановку...", padding_top=1)

    def _setup_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._shutdown_handler)
        if sys.platform != "win32":
            signal.signal(signal.SIGTERM, self._shutdown_handler)

    def _register_event_handlers(self) -> None:
        """Register event handlers for various events."""
        if self._event_handlers_registered:
            return

        self._event_manager.subscribe("USER_INPUT_RECEIVED", self._handle_user_input)
        self._event_manager.subscribe("HEALTH_CHECK_REQUEST", self._handle_health_check_request)
        self._event_manager.subscribe("DELIVERY_COMPLETE", self._handle_delivery_complete)
        self._event_handlers_registered = True

    async def run(self) -> None:
        """Main loop - manages the lifecycle, the bot itself runs in the Telegram client's handlers."""
        settings = self._settings_manager.get_settings()

        self._register_event_handlers()

        self._setup_signal_handlers()
        log("🚀 Бот запускается. 'health' - проверка, Ctrl+C - выход.")

        await self._event_manager.emit(AppStartEvent())

        self._update_handler.set_shutdown_event(self._stop_app_event)
        self._update_handler.configure(settings)

        async with AsyncExitStack() as stack:
            log("🔌 Запуск менеджеров...")
            for manager in self._managers:
                manager.set_shutdown_event(self._stop_app_event)
                await manager.setup(settings)
                await stack.enter_async_context(manager)
                self._health_monitor.register_check(
                    manager.__class__.__name__.removesuffix("Manager"), manager.health_check
                )
            log("✅ Менеджеры инициализированы. Бот принимает сообщения.")

            try:
                while not self._stop_app_event.is_set():
                    try:
                        async with asyncio.TaskGroup() as tg:
                            input_task = tg.create_task(self._input_watcher())
                            config_task = tg.create_task(self._config_watcher())
                            await self._stop_app_event.wait()
                            input_task.cancel()
                            config_task.cancel()
                    except* Exception as eg:
                        for exc in eg.exceptions:
                            if not self._stop_app_event.is_set():
                                log(f"💥 Перехвачено исключение в задаче: {type(exc).__name__}: {exc}")
                        if not self._stop_app_event.is_set():
                            log("🔄 Возвращаюсь в режим ожидания...")
            finally:
                log("🔌 Завершение работы...")
                await self._event_manager.emit(AppStopEvent())

        log("✅ Бот остановлен.")
