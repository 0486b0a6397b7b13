# hrdesk_api/wsgi.py
import logging
import os

from hrdesk_api import create_app

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"),
                    format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app(os.getenv("HRDESK_CONFIG"))
