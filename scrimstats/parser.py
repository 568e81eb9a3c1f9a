# scrimstats/parser.py

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from scrimstats import config
from scrimstats.models import MatchRow

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    rows: List[MatchRow] = field(default_factory=list)
    skipped: int = 0
    header_records: int = 0


class MatchExportParser:
    """
    Parse the game client's per-player match export.

    The export is positional:
    team color, name, goals, assists, saves, shots, demos, score,
    result, timestamp, player id. Extra columns are ignored and the
    header record may reappear anywhere in the file.
    """

    def __init__(self, header_sentinel: str = config.HEADER_SENTINEL):
        self.header_sentinel = header_sentinel
        self.int_columns = {
            'goals': config.COL_GOALS,
            'assists': config.COL_ASSISTS,
            'saves': config.COL_SAVES,
            'shots': config.COL_SHOTS,
            'demos': config.COL_DEMOS,
            'score': config.COL_SCORE,
        }

    def parse(self, raw: Union[bytes, str]) -> ParseResult:
        """
        Parse a whole export into match rows.

        Args:
            raw: Export contents as bytes (UTF-8, BOM tolerated) or text

        Returns:
            ParseResult with the parsed rows and a count of skipped records.
            Header, blank and incomplete records are skipped, never raised.
        """
        text = self._decode(raw)
        result = ParseResult()

        reader = csv.reader(io.StringIO(text))
        for fields in reader:
            line_number = reader.line_num
            if not any(cell.strip() for cell in fields):
                continue

            if self._is_header(fields):
                result.header_records += 1
                continue

            row = self.parse_record(fields, line_number=line_number)
            if row is None:
                result.skipped += 1
                continue
            result.rows.append(row)

        logger.debug(
            "Parsed %s rows (%s skipped, %s header records)",
            len(result.rows), result.skipped, result.header_records,
        )
        return result

    def parse_record(self, fields: Sequence[str], line_number: int = 0) -> Optional[MatchRow]:
        """
        Turn one positional record into a MatchRow.

        Returns None when the record is a header or is missing its
        name, color or result.
        """
        if self._is_header(fields):
            return None

        name = self._field(fields, config.COL_PLAYER_NAME)
        color = self._field(fields, config.COL_TEAM_COLOR)
        result = self._field(fields, config.COL_RESULT)
        if not name or not color or not result:
            return None

        stats = {key: self._parse_int(self._field(fields, index)) for key, index in self.int_columns.items()}

        return MatchRow(
            external_player_name=name,
            team_color=color,
            result=result,
            match_timestamp=self._field(fields, config.COL_TIMESTAMP),
            external_player_id=self._field(fields, config.COL_PLAYER_ID),
            line_number=line_number,
            **stats,
        )

    def _is_header(self, fields: Sequence[str]) -> bool:
        return self._field(fields, config.COL_TEAM_COLOR) == self.header_sentinel

    @staticmethod
    def _field(fields: Sequence[str], index: int) -> str:
        if index >= len(fields):
            return ''
        return (fields[index] or '').strip()

    @staticmethod
    def _parse_int(value: str) -> int:
        # Malformed numbers count as 0 rather than rejecting the row
        try:
            return int(value.replace(',', ''))
        except (TypeError, ValueError):
            return 0

    @staticmethod
    def _decode(raw: Union[bytes, str]) -> str:
        if isinstance(raw, bytes):
            return raw.decode('utf-8-sig', errors='replace')
        if raw.startswith('\ufeff'):
            return raw[1:]
        return raw
