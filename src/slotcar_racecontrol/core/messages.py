from __future__ import annotations

from typing import Dict, Mapping, Optional

from slotcar_racecontrol.logging import get_logger

_LOGGER = get_logger(__name__)

DEFAULT_LOCALE = "en"

CATALOGS: Dict[str, Dict[str, str]] = {
    "en": {
        "driver": "Driver {number}",
        "bestlap": "Fastest lap",
        "bests1": "Fastest sector 1",
        "bests2": "Fastest sector 2",
        "bests3": "Fastest sector 3",
        "fuel2": "Fuel low",
        "fuel1": "Fuel very low",
        "fuel0": "Out of fuel",
        "pitenter": "Pit stop",
        "pitexit": "Back on track",
        "falsestart": "False start",
        "finallap": "Final lap",
        "yellowflag": "Yellow flag",
        "greenflag": "Track is clear",
        "finished": "The race is over",
    },
    "de": {
        "driver": "Fahrer {number}",
        "bestlap": "Schnellste Runde",
        "bests1": "Schnellster Sektor 1",
        "bests2": "Schnellster Sektor 2",
        "bests3": "Schnellster Sektor 3",
        "fuel2": "Wenig Benzin",
        "fuel1": "Tank fast leer",
        "fuel0": "Tank leer",
        "pitenter": "Boxenstopp",
        "pitexit": "Zurück auf der Strecke",
        "falsestart": "Fehlstart",
        "finallap": "Letzte Runde",
        "yellowflag": "Gelbe Flagge",
        "greenflag": "Strecke frei",
        "finished": "Das Rennen ist beendet",
    },
}


class MessageResolver:
    """Localized default texts keyed by notification key.

    Lookups always use the active locale at call time, so switching locale
    affects every announcement made afterwards.
    """

    def __init__(
        self,
        catalogs: Optional[Mapping[str, Mapping[str, str]]] = None,
        locale: str = DEFAULT_LOCALE,
    ):
        self._catalogs = {k: dict(v) for k, v in (catalogs or CATALOGS).items()}
        self.locale = DEFAULT_LOCALE
        self.set_locale(locale)

    def set_locale(self, locale: str) -> None:
        if locale not in self._catalogs:
            _LOGGER.warning("Unknown locale %r, falling back to %s", locale, DEFAULT_LOCALE)
            locale = DEFAULT_LOCALE
        self.locale = locale

    def resolve(self, key: str, **params) -> Optional[str]:
        text = self._catalogs.get(self.locale, {}).get(key)
        if text is None:
            return None
        if params:
            try:
                return text.format(**params)
            except (KeyError, IndexError, ValueError) as e:
                _LOGGER.warning("Bad message template %s=%r: %s", key, text, e)
                return None
        return text
