"""Core domain package for frigram.

Core contains polling, deduplication, delivery and command logic without any
Telegram, HTTP or file-format specific code, keeping the business logic
portable and easy to test with fakes.
"""
