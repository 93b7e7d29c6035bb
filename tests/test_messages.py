"""Tests for moment display texts."""
import pytest

from models.schemas import DayClass, Moment, TimeWindow
from moments.messages import MOMENT_TEXTS, SHARED_SLEEP_TEXT, MomentTexts, display_text

ALL_MOMENTS = [Moment(day_class=d, time_window=t) for d in DayClass for t in TimeWindow]


class TestDisplayText:
    def test_every_moment_has_text(self):
        assert len(ALL_MOMENTS) == 16
        for moment in ALL_MOMENTS:
            assert display_text(moment).strip()

    def test_shared_text_is_the_only_duplicate(self):
        shared = {m.key for m in ALL_MOMENTS if display_text(m) == SHARED_SLEEP_TEXT}
        assert shared == {"saturday.mid_day", "sunday.morning"}

        others = [display_text(m) for m in ALL_MOMENTS if m.key not in shared]
        assert len(set(others)) == len(others) == 14

    def test_texts_fit_an_embed_title(self):
        assert all(len(text) <= 256 for text in MOMENT_TEXTS.values())

    def test_friday_after_work(self):
        moment = Moment(day_class=DayClass.FRIDAY, time_window=TimeWindow.AFTER_WORK)
        assert display_text(moment).startswith("🏪🐑")


class TestMomentTexts:
    def test_defaults(self):
        texts = MomentTexts()
        for moment in ALL_MOMENTS:
            assert texts.text_for(moment) == display_text(moment)

    def test_override(self):
        texts = MomentTexts({"friday.evening": "Bää"})
        assert texts.text_for(Moment(day_class="friday", time_window="evening")) == "Bää"
        assert texts.text_for(Moment(day_class="saturday", time_window="evening")) != "Bää"

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="unknown moment keys"):
            MomentTexts({"friday.brunch": "nope"})
