"""
Telegram Bot module for the crew relay.

ARCHITECTURE: Thin chat layer around the correlation core.
- Receives "!runcrew ..." commands (webhook or polling)
- Submits the request to the crew task API
- Registers the pending task in the ResultStore
- WebhookCorrelator (JobQueue, once a minute) matches captured results
  back to pending tasks and replies in the original thread

All state is in memory and lost on restart.

Import submodules directly (app.telegram_bot.bot, ...); services import
dispatcher, api_client and logging_config from here, so this package
must not pull in bot.py eagerly.
"""
