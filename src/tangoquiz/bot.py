"""Main Telegram bot module."""
import logging
from typing import List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import CallbackContext

from tangoquiz.config import settings
from tangoquiz.errors import (
    NotFoundError,
    StoreError,
    TangoQuizError,
    ValidationError,
)
from tangoquiz.models.quiz_models import Completed, Grade, GradeOutcome, InProgress
from tangoquiz.models.word_models import Mode, SortOrder, ViewState, WordEntry
from tangoquiz.services.busy import BusyFlag
from tangoquiz.services.quiz_service import QuizController
from tangoquiz.services.vocabulary_service import VocabularyService
from tangoquiz.services.word_store import WordStore

# Get logger for this module
logger = logging.getLogger(__name__)

# Conversation states
MAIN_MENU, ASKING_NAME, ADDING_WORD, ANSWERING = range(4)

# Button texts
MENU = "🏠 Menu"
START_QUIZ = "💡 Start Quiz"
ADD_WORD = "📝 Add Word"
MY_WORDS = "📚 My Words"
BY_DAY = "📅 Words by Day"
CHANGE_NAME = "👤 Change Name"
NEXT = "➡️ Next"
RETRY_MISSED = "🔁 Retry Missed Words"
LEAVE_QUIZ = "🚪 Leave Quiz"

SORT_LABELS = {
    SortOrder.NEWEST: "Newest",
    SortOrder.OLDEST: "Oldest",
    SortOrder.MISS_COUNT: "Most missed",
}

MAX_LISTED_DAYS = 20


def msg_back_to(text: str) -> str: return f"🔙 {text}"


KB_BTN_BACK_TO_MENU = InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")


# Per-chat state lookups

def get_store(context: CallbackContext) -> WordStore:
    return context.bot_data["store"]


def get_display_name(context: CallbackContext) -> Optional[str]:
    """Display name persisted in the user's client state."""
    return context.user_data.get("display_name")


def get_busy(context: CallbackContext) -> BusyFlag:
    if "busy" not in context.chat_data:
        context.chat_data["busy"] = BusyFlag()
    return context.chat_data["busy"]


def get_view(context: CallbackContext) -> ViewState:
    if "view" not in context.chat_data:
        context.chat_data["view"] = ViewState(sort_order=SortOrder(settings.quiz.default_sort_order))
    return context.chat_data["view"]


def set_view(context: CallbackContext, view: ViewState) -> ViewState:
    context.chat_data["view"] = view
    return view


def get_vocabulary(context: CallbackContext) -> VocabularyService:
    return VocabularyService(get_store(context), get_display_name(context), get_busy(context))


def get_quiz(context: CallbackContext) -> QuizController:
    """The chat's quiz controller; replaced when the display name changes."""
    quiz = context.chat_data.get("quiz")
    owner = get_display_name(context)
    if quiz is None or quiz.owner != owner:
        quiz = QuizController(get_store(context), owner, busy=get_busy(context), vocabulary=get_vocabulary(context))
        context.chat_data["quiz"] = quiz
    return quiz


# Messaging helpers

async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if context_type == "start": txt = ""
    elif update.callback_query: txt = f" {update.callback_query.data}"
    elif update.message: txt = f" {update.message.text!r}"
    user = update.effective_user
    logger.info(f"Received @{context_type:8} from user {user.username} ({user.id}){txt}")


async def send_popup_message(update: Update, text: str) -> None:
    """Show an alert-style popup, or a plain warning message outside callbacks."""
    if update.callback_query:
        await update.callback_query.answer(text=text, show_alert=True)
    else:
        await update.message.reply_text(f"⚠️ {text}")


async def send_or_edit(update: Update, text: str, keyboard: Optional[List[List[InlineKeyboardButton]]] = None) -> None:
    """Edit the callback's message in place, or reply to a text message."""
    reply_markup = InlineKeyboardMarkup(keyboard) if keyboard else None
    if update.callback_query:
        try:
            await update.callback_query.edit_message_text(text, reply_markup=reply_markup)
        except BadRequest as e:
            # A repeated sort click edits to identical text
            if "message is not modified" not in e.message.lower():
                raise
            logger.debug(f"Message unchanged: {e}")
    else:
        await update.message.reply_text(text, reply_markup=reply_markup)


def describe_error(error: TangoQuizError) -> str:
    """User-facing text for a failed action."""
    if isinstance(error, NotFoundError):
        return "This word was already removed."
    if isinstance(error, StoreError):
        return f"Something went wrong with the word store:\n{error.message}"
    return error.message


async def report_error(update: Update, error: TangoQuizError) -> None:
    if isinstance(error, StoreError) and not isinstance(error, NotFoundError):
        logger.error(f"Store error during {error.operation}: {error.message}")
    else:
        logger.info(f"Action rejected: {error.message}")
    await send_popup_message(update, describe_error(error))


# Formatting

def format_word(word: WordEntry) -> str:
    text = f"{word.kanji} : {word.reading} / {word.meaning}"
    if word.miss_count:
        text += f"  (missed {word.miss_count}x)"
    return text


def format_word_lines(words: List[WordEntry], bullet: Optional[str] = None) -> List[str]:
    """Numbered (or bulleted) word lines, capped to keep messages under Telegram's size limit."""
    shown = words[:settings.quiz.max_listed_words]
    lines = []
    for i, word in enumerate(shown, 1):
        prefix = bullet or f"{i}."
        lines.append(f"{prefix} {format_word(word)}")
    if len(words) > len(shown):
        lines.append(f"... and {len(words) - len(shown)} more")
    return lines


def format_feedback(grade: Grade) -> str:
    """Feedback shown once a question is graded."""
    outcome = grade.outcome
    if outcome is GradeOutcome.CORRECT:
        return "✅ Correct! 😊"
    if outcome is GradeOutcome.PARTIAL:
        matched, missed = grade.matched_field, grade.missed_field
        return (
            "🟡 Partly correct.\n"
            f"Your {matched.value} \"{grade.matched_candidate(matched)}\" is right.\n"
            f"Study the {missed.value}: \"{grade.accepted(missed)}\""
        )
    return (
        "❌ Wrong!\n"
        f"Reading: \"{grade.word.reading}\"\n"
        f"Meaning: \"{grade.word.meaning}\""
    )


def main_menu_keyboard() -> List[List[InlineKeyboardButton]]:
    return [
        [InlineKeyboardButton(START_QUIZ, callback_data="quiz_start")],
        [InlineKeyboardButton(ADD_WORD, callback_data="add_word")],
        [InlineKeyboardButton(MY_WORDS, callback_data="words"),
         InlineKeyboardButton(BY_DAY, callback_data="days")],
        [InlineKeyboardButton(CHANGE_NAME, callback_data="change_name")],
    ]


def quiz_keyboard(revealed: bool) -> List[List[InlineKeyboardButton]]:
    keyboard = []
    if revealed:
        keyboard.append([InlineKeyboardButton(NEXT, callback_data="quiz_next")])
    keyboard.append([InlineKeyboardButton(LEAVE_QUIZ, callback_data="quiz_exit")])
    return keyboard


# Handlers

async def handle_start(update: Update, context: CallbackContext, notice: str = "") -> int:
    """Start the conversation and show main menu."""
    await log_received(update, "start")

    name = get_display_name(context)
    if not name:
        return await ask_name(update, context)

    set_view(context, get_view(context).with_mode(Mode.MAIN))
    message = (f"{notice}\n\n" if notice else "") + (
        f"Welcome to the Japanese word quiz, {name}! 👋\n\n"
        "What would you like to do?"
    )
    await send_or_edit(update, message, main_menu_keyboard())
    return MAIN_MENU


async def ask_name(update: Update, context: CallbackContext) -> int:
    """Ask for the display name that scopes the word list."""
    await send_or_edit(update, "What name should I file your words under?\nSend it as a message.")
    return ASKING_NAME


async def handle_name(update: Update, context: CallbackContext) -> int:
    """Store the display name sent by the user."""
    await log_received(update, "name")

    name = (update.message.text or "").strip()
    if not name:
        await send_popup_message(update, "Please send a non-empty name")
        return ASKING_NAME

    context.user_data["display_name"] = name
    context.chat_data.pop("quiz", None)
    logger.info(f"User {update.effective_user.id} is now {name!r}")
    return await handle_start(update, context, notice=f"👤 Saved your name as {name}.")


async def handle_callback(update: Update, context: CallbackContext) -> int:
    """Handle callback queries from inline keyboard."""
    query = update.callback_query
    await log_received(update, "callback")

    if query.data == "back_to_menu":
        await query.answer()
        return await handle_start(update, context)
    if query.data == "change_name":
        await query.answer()
        return await ask_name(update, context)
    if not get_display_name(context):
        await query.answer()
        return await ask_name(update, context)

    try:
        if query.data == "add_word":
            result = await add_word(update, context)
        elif query.data == "words":
            result = await show_words(update, context)
        elif query.data.startswith("words_sort_"):
            result = await show_words(update, context, SortOrder(query.data[len("words_sort_"):]))
        elif query.data == "days":
            result = await show_days(update, context)
        elif query.data.startswith("day_"):
            result = await show_day(update, context, query.data[len("day_"):])
        elif query.data.startswith("delete_confirm_"):
            result = await delete_word(update, context, int(query.data[len("delete_confirm_"):]))
        elif query.data.startswith("delete_"):
            result = await confirm_delete(update, context, int(query.data[len("delete_"):]))
        elif query.data == "quiz_start":
            result = await start_quiz(update, context)
        elif query.data.startswith("quiz_day_"):
            result = await start_quiz(update, context, day=query.data[len("quiz_day_"):])
        elif query.data == "quiz_next":
            result = await next_question(update, context)
        elif query.data == "quiz_retry":
            result = await retry_missed(update, context)
        elif query.data == "quiz_exit":
            result = await leave_quiz(update, context)
        else:
            logger.warning(f"Unknown callback data {query.data!r}")
            result = MAIN_MENU
    except TangoQuizError as e:
        await report_error(update, e)
        return ANSWERING if isinstance(get_quiz(context).state, InProgress) else MAIN_MENU

    await query.answer()
    return result


async def handle_message(update: Update, context: CallbackContext) -> int:
    """Handle messages outside of any input step."""
    await log_received(update, "message")
    await update.message.reply_text("Please use the menu buttons, or /start")
    return MAIN_MENU


async def add_word(update: Update, context: CallbackContext) -> int:
    """Prompt for a new word."""
    await send_or_edit(
        update,
        "Send the new word as three lines:\n"
        "kanji\nreading\nmeaning\n\n"
        "Separate alternatives with commas, for example:\n"
        "日本\nにほん, にっぽん\n일본",
        [[KB_BTN_BACK_TO_MENU]],
    )
    return ADDING_WORD


async def handle_add_word(update: Update, context: CallbackContext) -> int:
    """Register the word sent as kanji / reading / meaning lines."""
    await log_received(update, "add")

    lines = [line for line in (update.message.text or "").splitlines() if line.strip()]
    try:
        if len(lines) > 3:
            raise ValidationError(
                f"Send exactly three lines (kanji, reading, meaning), got {len(lines)}. "
                "Put alternatives on one line, separated by commas"
            )
        kanji, reading, meaning = (lines + ["", "", ""])[:3]
        word = await get_vocabulary(context).add_word(kanji, reading, meaning)
    except TangoQuizError as e:
        await report_error(update, e)
        return ADDING_WORD

    await update.message.reply_text(
        f"✅ Word added!\n{format_word(word)}",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton(ADD_WORD, callback_data="add_word"),
             InlineKeyboardButton(MY_WORDS, callback_data="words")],
            [KB_BTN_BACK_TO_MENU],
        ]),
    )
    return MAIN_MENU


async def show_words(update: Update, context: CallbackContext, order: Optional[SortOrder] = None) -> int:
    """Show the word list in the chosen order, with delete buttons."""
    view = get_view(context).with_mode(Mode.WORDS).with_day(None)
    if order is not None:
        view = view.with_sort_order(order)
    set_view(context, view)

    snapshot = await get_vocabulary(context).refresh()
    words = snapshot.sorted(view.sort_order)
    shown = words[:settings.quiz.max_listed_words]

    lines = [f"📚 Your words ({len(words)})", f"Sorted by: {SORT_LABELS[view.sort_order]}", ""]
    lines += format_word_lines(words)
    if not words:
        lines.append("No words yet. Add some first!")

    keyboard = [[
        InlineKeyboardButton(("✓ " if view.sort_order is order_ else "") + label, callback_data=f"words_sort_{order_.value}")
        for order_, label in SORT_LABELS.items()
    ]]
    keyboard += [
        [InlineKeyboardButton(f"🗑 {word.kanji}", callback_data=f"delete_{word.id}")]
        for word in shown if word.id is not None
    ]
    keyboard.append([InlineKeyboardButton(START_QUIZ, callback_data="quiz_start"),
                     InlineKeyboardButton(BY_DAY, callback_data="days")])
    keyboard.append([KB_BTN_BACK_TO_MENU])
    await send_or_edit(update, "\n".join(lines), keyboard)
    return MAIN_MENU


async def show_days(update: Update, context: CallbackContext) -> int:
    """Day picker, most recent day first."""
    set_view(context, get_view(context).with_mode(Mode.WORDS))
    snapshot = await get_vocabulary(context).refresh()

    keyboard = [
        [InlineKeyboardButton(f"📅 {day} ({len(snapshot.groups[day])})", callback_data=f"day_{day}")]
        for day in snapshot.days[:MAX_LISTED_DAYS]
    ]
    keyboard.append([KB_BTN_BACK_TO_MENU])
    text = "Pick a day to review:" if snapshot.days else "No words yet. Add some first!"
    await send_or_edit(update, text, keyboard)
    return MAIN_MENU


async def show_day(update: Update, context: CallbackContext, day: str) -> int:
    """Words created on one day."""
    set_view(context, get_view(context).with_mode(Mode.WORDS).with_day(day))
    words = await get_vocabulary(context).words_for_day(day)

    lines = [f"📅 {day} ({len(words)})", ""]
    lines += format_word_lines(words)
    keyboard = []
    if words:
        keyboard.append([InlineKeyboardButton(f"{START_QUIZ} ({day})", callback_data=f"quiz_day_{day}")])
    keyboard.append([InlineKeyboardButton(msg_back_to(BY_DAY), callback_data="days"), KB_BTN_BACK_TO_MENU])
    await send_or_edit(update, "\n".join(lines), keyboard)
    return MAIN_MENU


async def confirm_delete(update: Update, context: CallbackContext, word_id: int) -> int:
    """Ask before removing a word."""
    await send_or_edit(
        update,
        "Do you really want to delete this word?",
        [[InlineKeyboardButton("🗑 Yes, delete", callback_data=f"delete_confirm_{word_id}"),
          InlineKeyboardButton("Cancel", callback_data="words")]],
    )
    return MAIN_MENU


async def delete_word(update: Update, context: CallbackContext, word_id: int) -> int:
    """Remove a word and show the refreshed list."""
    await get_vocabulary(context).remove_word(word_id)
    return await show_words(update, context)


async def start_quiz(update: Update, context: CallbackContext, day: Optional[str] = None) -> int:
    """Start a quiz over all live words, or over one day's words."""
    quiz = get_quiz(context)
    if isinstance(quiz.state, (InProgress, Completed)):
        quiz.session.reset()
    context.chat_data.pop("pending_reading", None)

    try:
        if day is None:
            await quiz.start()
        else:
            await quiz.start_day(day)
    except ValidationError as e:
        await send_or_edit(
            update,
            f"{e.message} 📝",
            [[InlineKeyboardButton(ADD_WORD, callback_data="add_word"), KB_BTN_BACK_TO_MENU]],
        )
        return MAIN_MENU

    set_view(context, get_view(context).with_mode(Mode.QUIZ))
    await send_question(update, context)
    return ANSWERING


async def send_question(update: Update, context: CallbackContext) -> None:
    """Show the current question and ask for the reading."""
    state = get_quiz(context).state
    word = state.current
    lines = [f"❓ {word.kanji}   ({state.position + 1}/{len(state.working_set)})"]
    if word.miss_count:
        lines.append(f"Missed before: {word.miss_count}x")
    lines += ["", "Send the reading (yomigana)."]
    await send_or_edit(update, "\n".join(lines), quiz_keyboard(revealed=False))


async def handle_answer(update: Update, context: CallbackContext) -> int:
    """Collect the reading, then the meaning, then grade the question."""
    await log_received(update, "answer")

    quiz = get_quiz(context)
    state = quiz.state
    if not isinstance(state, InProgress):
        return await handle_message(update, context)
    if state.revealed:
        await update.message.reply_text("Press Next to continue.", reply_markup=InlineKeyboardMarkup(quiz_keyboard(True)))
        return ANSWERING

    text = (update.message.text or "").strip()
    pending_reading = context.chat_data.get("pending_reading")
    if pending_reading is None:
        if not text:
            await send_popup_message(update, "Please enter the reading")
            return ANSWERING
        context.chat_data["pending_reading"] = text
        await update.message.reply_text("Now send the meaning.", reply_markup=InlineKeyboardMarkup(quiz_keyboard(False)))
        return ANSWERING

    store_error = None
    try:
        grade = await quiz.submit_answer(pending_reading, text)
    except StoreError as e:
        # The grade is already recorded; only the miss count update failed
        grade = quiz.state.last_grade if isinstance(quiz.state, InProgress) else None
        store_error = e
        if grade is None:
            await report_error(update, e)
            return ANSWERING
    except TangoQuizError as e:
        await report_error(update, e)
        return ANSWERING

    context.chat_data.pop("pending_reading", None)
    message = format_feedback(grade)
    if store_error is not None:
        message += f"\n\n⚠️ {describe_error(store_error)}"
    await update.message.reply_text(message, reply_markup=InlineKeyboardMarkup(quiz_keyboard(True)))
    return ANSWERING


async def next_question(update: Update, context: CallbackContext) -> int:
    """Advance to the next question or to the summary."""
    quiz = get_quiz(context)
    context.chat_data.pop("pending_reading", None)
    state = quiz.advance()
    if isinstance(state, Completed):
        return await show_summary(update, context)
    await send_question(update, context)
    return ANSWERING


async def show_summary(update: Update, context: CallbackContext) -> int:
    """Quiz completed: show missed words and the follow-up choices."""
    state = get_quiz(context).state
    if state.missed:
        lines = [f"🏁 Quiz finished! Missed words: {len(state.missed)}", ""]
        lines += format_word_lines(list(state.missed), bullet="•")
        keyboard = [[InlineKeyboardButton(RETRY_MISSED, callback_data="quiz_retry")]]
    else:
        lines = ["🎉 Quiz finished! You got every word right!"]
        keyboard = []
    keyboard.append([InlineKeyboardButton(msg_back_to(MENU), callback_data="quiz_exit")])
    await send_or_edit(update, "\n".join(lines), keyboard)
    return MAIN_MENU


async def retry_missed(update: Update, context: CallbackContext) -> int:
    """Quiz again on the words missed in the last pass."""
    get_quiz(context).retry_missed()
    context.chat_data.pop("pending_reading", None)
    await send_question(update, context)
    return ANSWERING


async def leave_quiz(update: Update, context: CallbackContext) -> int:
    """Discard the quiz and go back to the menu with a refreshed list."""
    context.chat_data.pop("pending_reading", None)
    snapshot = await get_quiz(context).return_to_main()
    return await handle_start(update, context, notice=f"📚 You have {len(snapshot.words)} words.")
