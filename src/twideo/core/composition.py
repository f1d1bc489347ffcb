from ..executors.relay_executor import RelayExecutor
from ..interfaces.app_composer import AppComposer
from ..interfaces.app_manager import BaseAppManager
from ..managers.telegram_manager import TelegramManager
from ..managers.twitter_manager import TwitterManager
from ..utils.log import set_debug
from .app_manager import AppManager
from .event_system import EventManager


class DefaultAppComposer(AppComposer):
    def compose_app(self, debug: bool = False) -> BaseAppManager:
        set_debug(debug)

        event_manager = EventManager()
        twitter_manager = TwitterManager()
        telegram_manager = TelegramManager()

        relay_executor = RelayExecutor(
            twitter_manager=twitter_manager,
            telegram_manager=telegram_manager,
            event_manager=event_manager,
        )
        telegram_manager.set_update_handler(relay_executor)

        # Twitter first: the bot must not receive updates before the content API is ready.
        managers = [twitter_manager, telegram_manager]
        return AppManager(managers=managers, update_handler=relay_executor, event_manager=event_manager)
