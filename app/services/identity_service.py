"""
Firebase Authentication admin operations used by registration
"""

import logging
from dataclasses import dataclass
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import GoogleAuthError

from ..config import FIREBASE_PROJECT_ID, FRONTEND_URL
from ..domain.businesses.exceptions import IdentityError
from ..email_service import EmailDeliveryError, send_account_verification_email

logger = logging.getLogger(__name__)

# Credential and transport failures surface from google-auth unwrapped
ADMIN_ERRORS = (FirebaseError, GoogleAuthError, ValueError)


def ensure_firebase_app() -> None:
    """Initialize the Firebase Admin SDK once per process"""
    try:
        firebase_admin.get_app()
    except ValueError:
        try:
            cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with default credentials")
        except Exception as e:
            logger.warning(f"⚠️ Default credentials unavailable ({e}), initializing without credentials")
            firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})


@dataclass
class IdentityUser:
    uid: str
    email: str
    display_name: Optional[str] = None


class FirebaseIdentityService:
    """Admin-side user management against Firebase Authentication"""

    def __init__(self):
        ensure_firebase_app()

    def email_exists(self, email: str) -> bool:
        """
        Scan every account for ``email``.

        Raises:
            IdentityError: the user listing failed
        """
        target = email.strip().lower()
        try:
            for user in firebase_auth.list_users().iterate_all():
                if user.email and user.email.lower() == target:
                    return True
        except ADMIN_ERRORS as e:
            raise IdentityError(f"Error checking user email uniqueness: {e}") from e
        return False

    def create_user(self, email: str, password: str, name: str) -> IdentityUser:
        """Create an unverified account. No session is issued."""
        try:
            record = firebase_auth.create_user(
                email=email, password=password, display_name=name, email_verified=False
            )
        except ADMIN_ERRORS as e:
            raise IdentityError(f"User creation failed: {e}") from e
        logger.info(f"✅ Firebase user created: {record.uid}")
        return IdentityUser(uid=record.uid, email=record.email or email, display_name=name)

    def delete_user(self, uid: str) -> None:
        try:
            firebase_auth.delete_user(uid)
        except ADMIN_ERRORS as e:
            raise IdentityError(f"User deletion failed: {e}") from e
        logger.info(f"🗑️ Firebase user deleted: {uid}")

    def update_user_metadata(self, uid: str, name: str, business_id: str) -> None:
        """Store the business id as a custom claim so it rides along in ID tokens"""
        try:
            firebase_auth.update_user(uid, display_name=name)
            firebase_auth.set_custom_user_claims(uid, {"name": name, "business_id": business_id})
        except ADMIN_ERRORS as e:
            raise IdentityError(f"User metadata update failed: {e}") from e

    async def send_verification_email(self, email: str, name: str, business_name: str) -> bool:
        """Best-effort; returns False when the link or the email could not be produced"""
        try:
            link = firebase_auth.generate_email_verification_link(
                email, action_code_settings=firebase_auth.ActionCodeSettings(url=f"{FRONTEND_URL}/dashboard")
            )
        except ADMIN_ERRORS as e:
            logger.warning(f"⚠️ Could not generate verification link for {email}: {e}")
            return False

        try:
            await send_account_verification_email(email, name, business_name, link)
        except EmailDeliveryError as e:
            logger.warning(f"⚠️ Verification email not sent to {email}: {e}")
            return False
        return True

    def check_health(self) -> bool:
        try:
            firebase_auth.list_users(max_results=1)
            return True
        except ADMIN_ERRORS as e:
            logger.error(f"❌ Firebase health check failed: {e}")
            return False


def get_identity_service() -> FirebaseIdentityService:
    """Dependency injection for FirebaseIdentityService"""
    return FirebaseIdentityService()
