"""
@mention extraction.

A mention is `@` followed by an identifier (a letter, then letters, digits,
`_` or `-`), matched case-insensitively and not preceded by a word character
(so `me@alice.dev` is not a mention). The text routed to a mentioned agent is
everything between its mention and the next one, trimmed.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..logs import get_logger

IDENTIFIER = r"[A-Za-z](?:[A-Za-z0-9_-]*[A-Za-z0-9_])?"

_LEFT = r"(?<![A-Za-z0-9_@])@"
_RIGHT = r"(?![A-Za-z0-9_]|-[A-Za-z0-9_])"

logger = get_logger("mentions")


@dataclass(frozen=True)
class Mention:
  target: str
  message: str


class MentionExtractor:
  """
  Finds mentions of agents in a block of text.

  Closed vocabulary (the default) only recognises the given agent names.
  Open vocabulary recognises any identifier: known names are reported in
  their configured spelling, anything else lower-cased, for the caller to
  provision or drop.
  """

  def __init__(self, vocabulary: Iterable[str] = (), open_vocabulary: bool = False):
    self.open_vocabulary = open_vocabulary
    self._canonical: Dict[str, str] = {name.lower(): name for name in vocabulary}

    if open_vocabulary:
      self._pattern = re.compile(f"{_LEFT}({IDENTIFIER}){_RIGHT}")
    elif self._canonical:
      # longest first so "@bob-2" is not read as "@bob"
      names = sorted(self._canonical.values(), key=len, reverse=True)
      alternatives = "|".join(re.escape(name) for name in names)
      self._pattern = re.compile(f"{_LEFT}({alternatives}){_RIGHT}", re.IGNORECASE)
    else:
      self._pattern = None

  def canonical(self, token: str) -> Optional[str]:
    known = self._canonical.get(token.lower())
    if known is not None:
      return known
    return token.lower() if self.open_vocabulary else None

  def extract(self, text: str, exclude: Iterable[str] = ()) -> List[Mention]:
    """
    Mentions in left-to-right order, each target at most once.

    When a target is mentioned again, the text after the later mention is
    appended to the first mention's message.

    :param text: Text to scan, typically one agent reply
    :param exclude: Names never reported (the author, agents already on the branch)
    """
    if self._pattern is None or not text:
      return []

    excluded = {name.lower() for name in exclude}
    matches = list(self._pattern.finditer(text))
    fragments: Dict[str, List[str]] = {}

    for i, match in enumerate(matches):
      target = self.canonical(match.group(1))
      if target is None or target.lower() in excluded:
        continue
      end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
      fragments.setdefault(target, []).append(text[match.end() : end].strip())

    mentions = [Mention(target, "\n".join(part for part in parts if part)) for target, parts in fragments.items()]
    if mentions:
      logger.debug(f"Found mentions of {[m.target for m in mentions]}")
    return mentions
