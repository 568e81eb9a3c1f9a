# scrimstats/identity.py

import logging
from typing import List, Optional, Sequence

from scrimstats.models import AggregatedPlayerStat, CanonicalAccount
from scrimstats.stores import NameMappingStore, RosterLookup

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Map an external player name to a known account.

    Resolution order:
    1. Explicit name link, if its account still resolves
    2. Case-insensitive exact match on roster display name or username,
       first account in roster order wins
    3. Otherwise unmatched (None)
    """

    def __init__(self, mappings: NameMappingStore, roster: RosterLookup,
                 accounts: Optional[Sequence[CanonicalAccount]] = None):
        self.mappings = mappings
        self.roster = roster
        # Snapshot of the roster for this run so every lookup sees the same order
        self.accounts: List[CanonicalAccount] = list(accounts) if accounts is not None else roster.list_accounts()

    def resolve(self, stat: AggregatedPlayerStat) -> Optional[CanonicalAccount]:
        return self.resolve_name(stat.name)

    def resolve_name(self, external_name: str) -> Optional[CanonicalAccount]:
        key = (external_name or "").strip().lower()
        if not key:
            return None

        account_id = self.mappings.get(key)
        if account_id:
            account = self.roster.resolve_account(account_id)
            if account is not None:
                logger.debug("Resolved '%s' via name link to %s", external_name, account.account_id)
                return account
            logger.warning(
                "Name link for '%s' points at unknown account %s; trying roster match",
                external_name, account_id,
            )

        candidates = [
            account for account in self.accounts
            if account.display_name.strip().lower() == key or account.username.strip().lower() == key
        ]
        if not candidates:
            return None
        if len(candidates) > 1:
            logger.warning(
                "'%s' matches %s roster accounts; using first registered (%s)",
                external_name, len(candidates), candidates[0].account_id,
            )
        return candidates[0]
