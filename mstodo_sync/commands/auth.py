"""Auth command - sign in to Microsoft To Do with a pasted access token."""

from datetime import datetime
from typing import Optional
import logging

from ..core.exceptions import AuthenticationError
from ..core.models import SyncConfig
from ..todo.auth import TokenManager


class AuthCommand:
    """Command for managing the Microsoft Graph access token.

    Changes are made on ``config``; ``changed`` tells the caller whether it
    needs saving.
    """

    def __init__(self, config: SyncConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.changed = False
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def _tokens(self) -> TokenManager:
        return TokenManager(
            client_id=self.config.client_id,
            tenant_id=self.config.tenant_id,
            access_token=self.config.access_token,
            logger=self.logger,
        )

    def run(
        self,
        token: Optional[str] = None,
        clear: bool = False,
        client_id: Optional[str] = None,
    ) -> bool:
        """
        Run the auth command.

        Args:
            token: Access token or full redirect URL pasted by the user
            clear: Forget the stored token
            client_id: Azure application (client) ID to store

        Returns:
            True if successful, False otherwise
        """
        if client_id:
            self.config.client_id = client_id.strip()
            self.changed = True
            print(f"✓ Client ID set to {self.config.client_id}")

        if clear:
            self.config.access_token = ""
            self.changed = True
            print("✓ Stored access token removed")
            return True

        if token:
            return self._store_token(token)

        if client_id:
            return True
        return self._show_instructions()

    def _store_token(self, value: str) -> bool:
        tokens = self._tokens()
        try:
            stored = tokens.set_manual_token(value)
        except AuthenticationError as exc:
            print(f"❌ {exc}")
            return False

        self.config.access_token = stored
        self.changed = True
        print("✓ Access token saved")

        expiry = tokens.token_expiry()
        if expiry is not None:
            if tokens.is_expired():
                print("⚠️  This token has already expired. Sign in again to get a fresh one.")
            else:
                print(f"  Expires: {datetime.fromtimestamp(expiry):%Y-%m-%d %H:%M}")
        return True

    def _show_instructions(self) -> bool:
        try:
            print(self._tokens().manual_auth_instructions())
        except AuthenticationError:
            print("No client ID configured.")
            print("Register an application in the Azure portal, then run:")
            print("  mstodo-sync auth --client-id <application id>")
            return False
        return True
