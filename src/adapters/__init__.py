"""Integration adapters for frigram.

Adapters implement the core ports for Frigate, Telegram and the JSON state
file, keeping third-party types out of the core.
"""
