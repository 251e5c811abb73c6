"""Entry point for running bot as module: python -m swapchat.bot"""

# Load .env file before importing anything else
from dotenv import load_dotenv
load_dotenv()

from swapchat.bot.bot import main

if __name__ == "__main__":
    main()
