"""Telegram bot front end."""
