import sys

from interactions import Client

from config import BOT_TOKEN

if not BOT_TOKEN:
    print("Error: BOT_TOKEN not found in .env file. Please make sure it is set.", file=sys.stderr)
    sys.exit(1)

bot = Client(token=BOT_TOKEN)
