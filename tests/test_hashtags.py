import pytest

from app.analytics import hashtags
from app.models.analytics import Trend
from app.models.instagram import HashtagSample
from tests.factories import make_post


def _series(engagements):
    """Posts oldest first with the given engagement each."""
    count = len(engagements)
    return [make_post(likes=e, comments=0, days_ago=count - i) for i, e in enumerate(engagements)]


class TestTrend:
    def test_rising_engagement_is_up(self):
        assert hashtags.detect_trend(_series([10, 10, 50, 50])) == Trend.UP

    def test_falling_engagement_is_down(self):
        assert hashtags.detect_trend(_series([50, 50, 10, 10])) == Trend.DOWN

    def test_small_change_is_stable(self):
        assert hashtags.detect_trend(_series([100, 100, 105, 105])) == Trend.STABLE

    def test_fewer_than_four_posts_is_stable(self):
        assert hashtags.detect_trend(_series([1, 1000, 1000])) == Trend.STABLE

    def test_input_order_does_not_matter(self):
        posts = _series([10, 10, 50, 50])
        assert hashtags.detect_trend(list(reversed(posts))) == Trend.UP

    def test_newer_half_takes_extra_post(self):
        # older half [10, 10], newer half [10, 50, 50]
        assert hashtags.detect_trend(_series([10, 10, 10, 50, 50])) == Trend.UP

    def test_zero_older_half(self):
        assert hashtags.detect_trend(_series([0, 0, 5, 5])) == Trend.UP
        assert hashtags.detect_trend(_series([0, 0, 0, 0])) == Trend.STABLE


class TestAnalyzeHashtags:
    def test_single_use_tags_dropped(self):
        posts = [
            make_post(likes=10, comments=0, hashtags=["beer", "rare"]),
            make_post(likes=30, comments=2, hashtags=["beer"]),
        ]
        stats = hashtags.analyze_hashtags(posts)
        assert list(stats) == ["beer"]
        beer = stats["beer"]
        assert beer.occurrences == 2
        assert beer.avg_engagement == 21
        assert beer.avg_likes == 20
        assert beer.avg_comments == 1
        assert beer.trend == Trend.STABLE

    def test_first_seen_order(self):
        posts = [make_post(hashtags=["z", "a"]), make_post(hashtags=["a", "z"])]
        assert list(hashtags.analyze_hashtags(posts)) == ["z", "a"]

    def test_repeated_runs_are_identical(self):
        posts = [
            make_post(likes=10 * i, comments=i, hashtags=["beer", "ipa", f"tag{i % 3}"], days_ago=i)
            for i in range(12)
        ]
        first = [(tag, stat.model_dump_json()) for tag, stat in hashtags.analyze_hashtags(posts).items()]
        second = [(tag, stat.model_dump_json()) for tag, stat in hashtags.analyze_hashtags(posts).items()]
        assert first == second
        assert [tag for tag, _ in first] == ["beer", "ipa", "tag0", "tag1", "tag2"]


class TestRecommendations:
    def _stats(self, count):
        posts = []
        for i in range(count):
            posts += [make_post(likes=(i + 1) * 10, comments=0, hashtags=[f"tag{i}"])] * 2
        return hashtags.analyze_hashtags(posts)

    def test_top_and_bottom(self):
        recs = hashtags.hashtag_recommendations(self._stats(6))
        assert recs.top_performing == ["tag5", "tag4", "tag3", "tag2", "tag1"]
        assert recs.underperforming == ["tag2", "tag1", "tag0"]

    def test_no_underperformers_for_small_sets(self):
        recs = hashtags.hashtag_recommendations(self._stats(4))
        assert recs.underperforming == []

    def test_suggested_excludes_used_tags(self):
        recs = hashtags.hashtag_recommendations(self._stats(2), suggested=["#Tag0", "cervezaartesanal"])
        assert recs.suggested == ["cervezaartesanal"]


class TestScores:
    @pytest.mark.parametrize(
        "total, expected",
        [(2_000_000, 95), (1_000_000, 80), (200_000, 80), (50_000, 60), (5_000, 40), (500, 20)],
    )
    def test_popularity_tiers(self, total, expected):
        assert hashtags.popularity(total) == expected

    def test_difficulty(self):
        assert hashtags.difficulty(80, 2000) == 86
        assert hashtags.difficulty(20, 500) == 29
        assert hashtags.difficulty(60, 100) == 45

    def test_relevance(self):
        brand = ["CraftBeer", "zigurat"]
        assert hashtags.relevance("#craftbeer", brand) == 100
        assert hashtags.relevance("rockchileno", brand) == 100
        assert hashtags.relevance("cervezarock", brand) == 100
        assert hashtags.relevance("santiago", brand) == 40
        assert hashtags.relevance("beerlover", brand) == 80
        assert hashtags.relevance("random", brand) == 0

    def test_should_use_all_positive_rules(self):
        use, reasons = hashtags.should_use(60, 45, 100)
        assert use is True
        assert len(reasons) == 3

    def test_should_use_too_competitive(self):
        use, reasons = hashtags.should_use(95, 96, 100)
        assert use is False
        assert reasons == ["Too competitive to rank"]

    def test_last_matching_rule_wins(self):
        use, reasons = hashtags.should_use(60, 45, 0)
        assert use is False
        assert reasons == ["Balanced popularity for reach", "Low relevance for the brand"]

    def test_best_time_to_use(self):
        assert hashtags.best_time_to_use(95) == "Viral content or collaborations"
        assert hashtags.best_time_to_use(60) == "Core product posts"
        assert hashtags.best_time_to_use(20) == "Niche or educational content"


def test_evaluate_hashtag():
    sample = HashtagSample(
        hashtag="#CraftBeer",
        total_posts=50_000,
        posts=[make_post(likes=90, comments=10, days_ago=i) for i in range(4)],
    )
    evaluation = hashtags.evaluate_hashtag(sample, ["craftbeer"])
    assert evaluation.hashtag == "craftbeer"
    assert evaluation.popularity == 60
    assert evaluation.difficulty == 45
    assert evaluation.relevance == 100
    assert evaluation.avg_engagement == 100
    assert evaluation.should_use is True
    assert evaluation.trend == Trend.STABLE
