import pytest

from teamdesk.chat.models import Huddle
from teamdesk.chat.services import huddles

pytestmark = pytest.mark.django_db


def test_start_creates_active_huddle(user):
    huddle, created = huddles.start("general", "h1", user.id)
    assert created is True
    assert huddles.get_active("general") == huddle


def test_second_start_returns_existing_huddle(user, other_user):
    first, _ = huddles.start("general", "h1", user.id)
    second, created = huddles.start("general", "h2", other_user.id)

    assert created is False
    assert second.pk == first.pk
    assert second.huddle_id == "h1"
    assert Huddle.objects.filter(channel_key="general", ended_at__isnull=True).count() == 1


def test_end_with_mismatched_id_keeps_active_huddle(user):
    huddles.start("general", "h1", user.id)

    assert huddles.end("general", "other") is None
    assert huddles.get_active("general").huddle_id == "h1"


def test_end_then_start_again(user):
    huddles.start("general", "h1", user.id)
    ended = huddles.end("general", "h1")
    assert ended.ended_at is not None
    assert huddles.get_active("general") is None

    huddle, created = huddles.start("general", "h2", user.id)
    assert created is True
    assert huddle.huddle_id == "h2"


def test_huddles_are_scoped_per_channel(user):
    huddles.start("general", "h1", user.id)
    _, created = huddles.start("random", "h1", user.id)
    assert created is True


def test_start_falls_back_to_row_that_won_the_race(user, other_user, monkeypatch):
    existing = Huddle.objects.create(
        channel_key="general", huddle_id="h1", started_by=user
    )
    real_get_active = huddles.get_active
    lookups = []

    def stale_then_real(channel_key):
        # The first lookup misses the row another worker just inserted
        lookups.append(channel_key)
        if len(lookups) == 1:
            return None
        return real_get_active(channel_key)

    monkeypatch.setattr(huddles, "get_active", stale_then_real)

    huddle, created = huddles.start("general", "h2", other_user.id)

    assert created is False
    assert huddle.pk == existing.pk
    assert huddle.huddle_id == "h1"
    assert len(lookups) == 2
    assert Huddle.objects.filter(channel_key="general").count() == 1
