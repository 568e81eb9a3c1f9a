# scrimstats/roster_manager.py

from typing import Dict, List, Optional

from scrimstats.database import Database


class RosterManager:
    """CRUD operations for accounts and external name links."""

    def __init__(self, db: Database):
        self.db = db

    # --- Accounts ---

    def register_account(self, account_id: str, username: str, display_name: str = None,
                         team: str = None) -> Dict:
        """Register an account with a zeroed ledger. Returns the stored account."""
        account_id = (account_id or "").strip()
        username = (username or "").strip()
        if not account_id:
            raise ValueError("account_id is required")
        if not username:
            raise ValueError("username is required")
        with self.db.write_lock:
            if self.db.account_exists(account_id):
                raise ValueError(f"Account '{account_id}' is already registered")
            self.db.add_account(account_id, username, (display_name or username).strip(), team)
        return self.db.get_account(account_id)

    def get_account(self, account_id: str) -> Optional[Dict]:
        return self.db.get_account(account_id)

    def get_all_accounts(self) -> List[Dict]:
        return self.db.get_all_accounts()

    def rename_account(self, account_id: str, display_name: str) -> Dict:
        display_name = (display_name or "").strip()
        if not display_name:
            raise ValueError("display_name must not be empty")
        self._require_account(account_id)
        self.db.update_account_display_name(account_id, display_name)
        return self.db.get_account(account_id)

    def set_team(self, account_id: str, team: Optional[str]) -> Dict:
        self._require_account(account_id)
        self.db.update_account_team(account_id, (team or "").strip() or None)
        return self.db.get_account(account_id)

    # --- Name links ---

    def link_name(self, external_name: str, account_id: str) -> None:
        """Link an export name to an account. Both sides may be linked only once."""
        key = (external_name or "").strip().lower()
        if not key:
            raise ValueError("external_name must not be empty")
        with self.db.write_lock:
            self._require_account(account_id)
            existing = self.db.get_name_mapping(key)
            if existing:
                raise ValueError(f"'{external_name}' is already linked to account '{existing}'")
            linked_name = self.db.get_mapping_for_account(account_id)
            if linked_name:
                raise ValueError(f"Account '{account_id}' is already linked to '{linked_name}'")
            self.db.set_name_mapping(key, account_id)

    def unlink_name(self, external_name: str) -> None:
        removed = self.db.delete_name_mapping(external_name or "")
        if not removed:
            raise ValueError(f"'{external_name}' is not linked")

    def get_links(self) -> List[Dict]:
        return self.db.get_all_name_mappings()

    def _require_account(self, account_id: str) -> None:
        if not self.db.account_exists(account_id):
            raise ValueError(f"Account '{account_id}' not found")
