import json
import logging
import os
import threading

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()


def initialize_firebase() -> None:
    """Initialize the Firebase Admin SDK once; only token verification is used."""
    with _init_lock:
        if firebase_admin._apps:
            return

        # Method 1: Service Account Key from Environment Variable (production)
        service_account_key_json = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY")
        if service_account_key_json:
            try:
                cred = credentials.Certificate(json.loads(service_account_key_json))
            except ValueError as e:
                logger.error("[FIREBASE] FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON: %s", e)
            else:
                firebase_admin.initialize_app(cred)
                logger.info("[FIREBASE] Initialized with service account key from environment.")
                return

        # Method 2: Service Account Key File (local development)
        service_account_key_path = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY_PATH")
        if service_account_key_path and os.path.exists(service_account_key_path):
            firebase_admin.initialize_app(credentials.Certificate(service_account_key_path))
            logger.info("[FIREBASE] Initialized with service account key file.")
            return

        # Method 3: GOOGLE_APPLICATION_CREDENTIALS / application default credentials
        firebase_admin.initialize_app()
        logger.info("[FIREBASE] Initialized with application default credentials.")


def verify_id_token(token: str) -> dict:
    initialize_firebase()
    return firebase_auth.verify_id_token(token)
