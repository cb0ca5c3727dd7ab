"""Main application entry point."""
import logging
from typing import Optional
from warnings import filterwarnings

from telegram.warnings import PTBUserWarning

# Suppress the warning about CallbackQueryHandler and per_message
filterwarnings(action="ignore", message=r".*CallbackQueryHandler", category=PTBUserWarning)

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    PersistenceInput,
    PicklePersistence,
    filters,
)

from tangoquiz.config import settings
from tangoquiz.models.base import engine, init_db
from tangoquiz.services.word_store import SqlAlchemyWordStore, WordStore
from tangoquiz.bot import (
    handle_start,
    handle_callback,
    handle_message,
    handle_name,
    handle_add_word,
    handle_answer,
    ask_name,
    MAIN_MENU,
    ASKING_NAME,
    ADDING_WORD,
    ANSWERING,
)


def build_conversation_handler() -> ConversationHandler:
    """Create the conversation handler for both messages and callbacks.

    Quiz and busy state live in chat_data, so only private chats are served:
    there the chat and the user are the same.
    """
    private = filters.ChatType.PRIVATE
    text_only = filters.TEXT & ~filters.COMMAND & private
    return ConversationHandler(
        entry_points=[
            CommandHandler("start", handle_start, filters=private),
            CommandHandler("name", ask_name, filters=private),
            CallbackQueryHandler(handle_callback),
        ],
        states={
            MAIN_MENU: [
                MessageHandler(text_only, handle_message),
                CallbackQueryHandler(handle_callback),
            ],
            ASKING_NAME: [
                MessageHandler(text_only, handle_name),
                CallbackQueryHandler(handle_callback),
            ],
            ADDING_WORD: [
                MessageHandler(text_only, handle_add_word),
                CallbackQueryHandler(handle_callback),
            ],
            ANSWERING: [
                MessageHandler(text_only, handle_answer),
                CallbackQueryHandler(handle_callback),
            ],
        },
        fallbacks=[
            CommandHandler("start", handle_start, filters=private),
            CommandHandler("name", ask_name, filters=private),
        ],
        per_message=False,
    )


class TangoBot:
    """Main application class."""

    def __init__(self, store: Optional[WordStore] = None):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.store: Optional[WordStore] = store
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            # Initialize database
            init_db()
            if self.store is None:
                self.store = SqlAlchemyWordStore(engine)
            self.logger.info(f"Database initialized (tombstones: {self.store.supports_tombstone})")

            # Only the display name in user_data is client state worth keeping
            persistence = PicklePersistence(
                filepath=settings.bot.persistence_file,
                store_data=PersistenceInput(bot_data=False, chat_data=False, user_data=True, callback_data=False),
            )

            # Create application
            self.application = (
                Application.builder()
                .token(settings.bot.token)
                .persistence(persistence)
                .build()
            )
            self.application.bot_data["store"] = self.store
            self.logger.info("Application created")

            self.application.add_handler(build_conversation_handler())
            self.logger.info("Handlers added")

            # Start application
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.running and self.application is None:
            return

        try:
            if self.application:
                if self.application.updater and self.application.updater.running:
                    await self.application.updater.stop()
                if self.application.running:
                    await self.application.stop()
                await self.application.shutdown()
                self.logger.info("Application stopped")
        except Exception as e:
            self.logger.error("Error while stopping application: %s", str(e))
            raise
        finally:
            self.application = None
            self.running = False
