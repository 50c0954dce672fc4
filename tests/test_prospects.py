import pytest
from pydantic import ValidationError

from app.analytics import prospects
from app.models.analytics import (
    Priority,
    ProspectActionPlan,
    ProspectEvaluation,
    ProspectInsights,
    ProspectScore,
    ScoringWeights,
)
from app.models.instagram import MediaType, ProfileData
from tests.factories import NOW, make_post, make_profile

LOCATIONS = ["santiago", "providencia", "chile"]


def _beer_posts(count=10, days_apart=1):
    return [
        make_post(
            likes=140,
            comments=10,
            days_ago=i * days_apart,
            caption="Cerveza artesanal y música en vivo este viernes, gran ambiente para celebrar",
            hashtags=["cervezaartesanal", "santiago", "bar", "rock", "craftbeer"],
            media_type=MediaType.VIDEO if i % 2 else MediaType.PHOTO,
        )
        for i in range(count)
    ]


def _bar(**kwargs):
    defaults = dict(
        username="bar_el_lupulo",
        followers=5000,
        biography="Bar de cerveza artesanal en Santiago, Providencia",
        category="Bar",
        business_email="contacto@lupulo.cl",
        business_address="Av. Providencia 1234, Santiago",
    )
    defaults.update(kwargs)
    username = defaults.pop("username")
    followers = defaults.pop("followers")
    return make_profile(username, followers, **defaults)


class TestSubScores:
    def test_industry_match(self):
        profile = make_profile(biography="Bar de cerveza artesanal", category="Bar")
        # cerveza, artesanal: 30; bar: 10; category: 25
        assert prospects.industry_match(profile, []) == 65

    def test_industry_match_restaurant_category(self):
        profile = make_profile(biography="", category="Restaurant")
        assert prospects.industry_match(profile, []) == 20

    def test_industry_match_capped(self):
        profile = _bar(biography="cerveza beer craft artesanal brewery brewing hop malta bar pub food")
        assert prospects.industry_match(profile, []) == 100

    def test_audience_match_strong(self):
        assert prospects.audience_match(_bar(), _beer_posts(), now=NOW) == 100

    def test_audience_match_zero_followers(self):
        profile = make_profile(followers=0)
        posts = [make_post(likes=10, days_ago=60)]
        # size 10, rate 10, recency 5
        assert prospects.audience_match(profile, posts, now=NOW) == 25

    def test_audience_recency_is_relative_to_now(self):
        profile = make_profile(followers=5000)
        posts = [make_post(likes=0, comments=0, days_ago=40 + i) for i in range(10)]
        assert prospects.audience_match(profile, posts, now=NOW) == 40 + 10 + 5

    def test_location_keywords_capped(self):
        profile = make_profile(biography="Santiago, Providencia, Chile")
        assert prospects.location_match(profile, LOCATIONS, "") == 50

    def test_location_with_business_address(self):
        assert prospects.location_match(_bar(), LOCATIONS, "santiago") == 100

    def test_location_neutral_when_unknown(self):
        profile = make_profile(biography="Beer lovers")
        assert prospects.location_match(profile, LOCATIONS, "santiago") == 30

    def test_content_style_minimal(self):
        posts = [make_post(hashtags=[], caption="") for _ in range(3)]
        assert prospects.content_style(posts) == 30

    def test_content_style_rich(self):
        # two media types 30, hashtags 25, caption 15, experiential capped 20
        assert prospects.content_style(_beer_posts()) == 90

    def test_content_style_empty(self):
        assert prospects.content_style([]) == 15


class TestScore:
    def test_bounds_and_tier(self):
        result = prospects.score(_bar(), _beer_posts(), location_keywords=LOCATIONS, target_city="santiago", now=NOW)
        assert 0 <= result.score <= 100
        assert result.priority == Priority.ALTA

    def test_custom_weights(self):
        weights = ScoringWeights(industry=1.0, audience=0.0, location=0.0, content=0.0)
        profile = make_profile(biography="Bar de cerveza artesanal", category="Bar")
        result = prospects.score(profile, [], weights=weights, now=NOW)
        assert result.score == 65
        assert result.priority == Priority.MEDIA

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            ScoringWeights(industry=0.5, audience=0.5, location=0.5, content=0.0)

    def test_weights_must_be_positive(self):
        with pytest.raises(ValidationError):
            ScoringWeights(industry=1.2, audience=-0.2, location=0.0, content=0.0)

    @pytest.mark.parametrize(
        "value, expected",
        [(100, Priority.ALTA), (75, Priority.ALTA), (74, Priority.MEDIA), (50, Priority.MEDIA), (49, Priority.BAJA)],
    )
    def test_priority_tiers(self, value, expected):
        assert prospects.priority_for(value) == expected


class TestRelevance:
    def test_bar_is_relevant(self):
        assert prospects.is_relevant_for_prospection(make_profile(followers=2000, biography="Bar y terraza"))

    def test_personal_accounts_excluded(self):
        profile = make_profile(followers=2000, biography="Blog personal de comida")
        assert not prospects.is_relevant_for_prospection(profile)

    def test_follower_window(self):
        assert not prospects.is_relevant_for_prospection(make_profile(followers=50, biography="Pub"))
        assert not prospects.is_relevant_for_prospection(make_profile(followers=500_000, biography="Pub"))

    def test_unrelated_bio(self):
        assert not prospects.is_relevant_for_prospection(make_profile(followers=2000, biography="Fotos de viajes"))


def test_evaluate_high_priority_prospect():
    data = ProfileData(profile=_bar(), posts=_beer_posts())
    evaluation = prospects.evaluate(data, location_keywords=LOCATIONS, target_city="santiago", now=NOW)

    assert evaluation.username == "bar_el_lupulo"
    assert evaluation.action_plan.timeline == "1-2 weeks"
    assert "Send a commercial proposal by email" in evaluation.action_plan.next_steps
    assert "Email: contacto@lupulo.cl" in evaluation.insights.contact_recommendations
    assert "Business contact details available" in evaluation.insights.opportunities


def _evaluation(username, value):
    priority = prospects.priority_for(value)
    return ProspectEvaluation(
        username=username,
        profile=make_profile(username),
        score=ProspectScore(
            industry_match=0, audience_match=0, location_match=0, content_style=0, score=value, priority=priority
        ),
        insights=ProspectInsights(strengths=[], opportunities=[], contact_recommendations=[]),
        action_plan=ProspectActionPlan(priority=priority, next_steps=[], timeline=""),
    )


def test_rank_is_stable():
    ranked = prospects.rank([_evaluation("a", 60), _evaluation("b", 80), _evaluation("c", 60)])
    assert [e.username for e in ranked] == ["b", "a", "c"]


def test_prospection_summary():
    evaluations = [
        _evaluation("f", 10),
        _evaluation("a", 90),
        _evaluation("b", 80),
        _evaluation("e", 60),
        _evaluation("c", 80),
        _evaluation("d", 76),
    ]
    summary = prospects.prospection_summary(evaluations)

    assert summary.high_priority == ["a", "b", "c", "d"]
    assert summary.medium_priority == ["e"]
    assert summary.low_priority == ["f"]
    assert summary.average_score == 66
    assert [a.prospect for a in summary.immediate] == ["a", "b", "c"]
    assert [a.prospect for a in summary.short_term] == ["d", "e"]
    assert [a.prospect for a in summary.long_term] == ["f"]


def test_empty_summary():
    summary = prospects.prospection_summary([])
    assert summary.average_score == 0
    assert summary.high_priority == []
