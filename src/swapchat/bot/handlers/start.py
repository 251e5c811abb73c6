"""Start and basic command handlers."""

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from swapchat.bot.keyboards import main_menu_keyboard
from swapchat.bot.sessions import ChatSessionRegistry
from swapchat.utils.locks import ChatLock

router = Router()


@router.message(CommandStart())
async def cmd_start(message: Message, registry: ChatSessionRegistry) -> None:
    """Handle /start command - attach the chat session and show wallet status."""
    first_name = message.from_user.first_name if message.from_user else None
    welcome_text = f"""Welcome to Prophet Swap, {first_name or "there"}!

Swap and buy KRC-20 tokens from your KASWARE wallet.

Use /swap to trade one token for another,
/buy [TOKEN] to buy with KAS, or /help for commands."""

    await message.answer(welcome_text, reply_markup=main_menu_keyboard())

    async with ChatLock(message.chat.id, operation="start"):
        chat = await registry.get(message.chat.id)
        await chat.show_status()


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    """Handle /help command."""
    help_text = """Prophet Swap Commands

Trading Commands:
  /swap          - Swap between tokens
  /buy           - Buy a token with KAS
  /buy [TOKEN]   - Buy a specific token, e.g. /buy NACHO

Wallet:
  /start   - Show wallet status and quick actions
  /help    - Show this help message

During a swap, tap a token or type its symbol,
then type the amount when asked."""

    await message.answer(help_text)
