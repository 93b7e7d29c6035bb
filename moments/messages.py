"""Display text for every moment."""
from __future__ import annotations

from typing import Optional

from models.schemas import DayClass, Moment, TimeWindow

# Saturday mid-day and Sunday morning deliberately share one text.
SHARED_SLEEP_TEXT = "🛏️ Zzz"

_D = DayClass
_T = TimeWindow

MOMENT_TEXTS: dict[tuple[DayClass, TimeWindow], str] = {
    (_D.WORK_DAY, _T.MORNING): "🏢🐑 Voi voi taas täytyy herätä imemään pomon perse karvoja,, BÄÄ BÄÄ",
    (_D.WORK_DAY, _T.MID_DAY): "💩🐑 Aika käyttää naapurin Ari-Jukan vinkkiä ja käydä paskalla niin minulle maksetaan paskomisesta RÄH HÄH",
    (_D.WORK_DAY, _T.AFTER_WORK): "🏠🐑 Vihdoin pääsee kotiin niin ei tarvitse kusipää pomon olla nalkuttamassa",
    (_D.WORK_DAY, _T.EVENING): "🛏️🐑 Kohtahan se pitää mennä nukkumaan,, taidanpa laittaa herätys kellon valmiiksi",
    (_D.FRIDAY, _T.MORNING): "🛏️🐑⏰ PIPIPI PIPIPI,,, saatanan herätyskello,, onneksi tänään on perjantai niin voi töiden jälkeen vetää pään tyhjäksi",
    (_D.FRIDAY, _T.MID_DAY): "💩🐑 Taidanpa perjantain kunniaksi käydä erikois pitkällä paskalla",
    (_D.FRIDAY, _T.AFTER_WORK): "🏪🐑 Päästihän se pomo vihdoin lähtemään,, nyt äkkiä alkoon",
    (_D.FRIDAY, _T.EVENING): "🍺🐑 Vittu että on hyvä meno kun ei tarvitse huomenna herätä ja voin juoda koko yön",
    (_D.SATURDAY, _T.MORNING): "🛏️🐑 Nythän se voisi olla aika mennä nukkumaan kun viinaksetkin on jo loppu",
    (_D.SATURDAY, _T.MID_DAY): SHARED_SLEEP_TEXT,
    (_D.SATURDAY, _T.AFTER_WORK): "🏪🐑 Voi vittu,, kello on jo noin paljon,, nyt äkkiä kauppaan hakemaan kaljat tälle päivälle",
    (_D.SATURDAY, _T.EVENING): "🍺🐑 Aika lähteä baariin laulamaan karaokea ja juomaan paikka tyhjäksi",
    (_D.SUNDAY, _T.MORNING): SHARED_SLEEP_TEXT,
    (_D.SUNDAY, _T.MID_DAY): "🐑 Vittu että on ihan hirveä krapula,, en kyllä juo enää ennen ensi kertaa RÄH HÄH",
    (_D.SUNDAY, _T.AFTER_WORK): "🍕🐑 Olipa hyvä Grandiosan pakaste sipuli pizza tasaamaan oloa",
    (_D.SUNDAY, _T.EVENING): "🛏️🐑 Oi voi,, taas pitää valmistautua nukkumaan että jaksaa huomenna leikkiä pomon perse karvoilla koko päivän",
}


class MomentTexts:
    """
    Text lookup with optional per-moment overrides from settings.

    Overrides are keyed by Moment.key, e.g. {"friday.evening": "..."}.
    """

    def __init__(self, overrides: Optional[dict[str, str]] = None):
        overrides = overrides or {}
        known = {f"{d.value}.{t.value}" for d, t in MOMENT_TEXTS}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"unknown moment keys in message overrides: {sorted(unknown)}")
        self._overrides = dict(overrides)

    def text_for(self, moment: Moment) -> str:
        override = self._overrides.get(moment.key)
        if override:
            return override
        return MOMENT_TEXTS[(moment.day_class, moment.time_window)]


def display_text(moment: Moment) -> str:
    return MOMENT_TEXTS[(moment.day_class, moment.time_window)]
