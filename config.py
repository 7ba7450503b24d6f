# config.py
import os

# The upstream domain moves often; override it without touching the code
OTAKUDESU_BASE_URL = os.getenv("OTAKUDESU_BASE_URL", "https://otakudesu.cloud")
BASE_ROUTE = "/otakudesu"
AJAX_PATH = "/wp-admin/admin-ajax.php"

# Scrambled admin-ajax action names (see codec.scramble)
NONCE_ACTION = "nnefdlqfksfmpnghdpmfpjjqemfjsegs"
EMBED_ACTION = "fngidipmgoddgiqgshiiqslfosmkjolh"

# Cache lifetimes in seconds, None means until restart
LISTING_TTL = 10 * 60
SERVER_URL_TTL = 2 * 60
DETAIL_TTL = None

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10.0"))
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"

PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
