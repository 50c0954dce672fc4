from app.analytics import competitive
from app.models.analytics import ComparisonType, MatrixRow
from app.models.instagram import MediaType
from tests.factories import make_data, make_post


def _posts(likes, count=4, hashtags=None, media_type=MediaType.PHOTO, spacing=1):
    return [
        make_post(likes=likes, comments=0, hashtags=hashtags, media_type=media_type, days_ago=i * spacing)
        for i in range(count)
    ]


class TestCompare:
    def test_half_engagement_of_baseline(self):
        subject = make_data("subject", posts=_posts(50))
        baseline = make_data("baseline", posts=_posts(100))
        analysis = competitive.analyze(subject, baseline, ComparisonType.COMPETITOR)
        assert analysis.comparison.engagement_comparison == 0.5

        [row] = competitive.competitive_matrix([analysis])
        assert row.avg_engagement == 50

    def test_engagement_score_is_capped(self):
        subject = make_data("subject", posts=_posts(500))
        baseline = make_data("baseline", posts=_posts(100))
        analysis = competitive.analyze(subject, baseline, ComparisonType.COMPETITOR)
        assert analysis.comparison.engagement_comparison == 5.0
        assert 0 <= analysis.overall_score <= 100

    def test_self_comparison_is_identity(self):
        brand = make_data("brand", posts=_posts(40, hashtags=["beer", "rock"]))
        comparison = competitive.compare(brand, brand)
        assert comparison.engagement_comparison == 1.0
        assert comparison.followers_gap == 0
        assert comparison.content_similarity == 1.0

    def test_self_comparison_without_engagement(self):
        brand = make_data("brand", posts=_posts(0))
        assert competitive.compare(brand, brand).engagement_comparison == 1.0

    def test_inactive_baseline_does_not_divide_by_zero(self):
        subject = make_data("subject", posts=_posts(5))
        baseline = make_data("baseline", posts=_posts(0))
        assert competitive.compare(subject, baseline).engagement_comparison == 5.0

    def test_followers_gap(self):
        subject = make_data("subject", followers=1000)
        baseline = make_data("baseline", followers=4000)
        assert competitive.compare(subject, baseline).followers_gap == -3000


class TestContentSimilarity:
    def test_disjoint_profiles(self):
        a = _posts(10, hashtags=["x"], media_type=MediaType.PHOTO)
        b = _posts(10, hashtags=["y"], media_type=MediaType.VIDEO)
        assert competitive.content_similarity(a, b) == 0.0

    def test_partial_overlap(self):
        a = _posts(10, hashtags=["x", "y"])
        b = _posts(10, hashtags=["y", "z"])
        assert competitive.content_similarity(a, b) == 0.7

    def test_no_hashtags_only_media_mix_counts(self):
        assert competitive.content_similarity(_posts(10), _posts(20)) == 0.4

    def test_empty_side(self):
        assert competitive.content_similarity([], _posts(10)) == 0.0


class TestSwot:
    def test_competitor_threats(self):
        subject = make_data("subject", followers=1000, posts=_posts(50))
        baseline = make_data("baseline", followers=10_000, posts=_posts(100))
        analysis = competitive.analyze(subject, baseline, ComparisonType.COMPETITOR)
        assert "Competitor engagement is higher" in analysis.insights.threats
        assert "Significant follower gap" in analysis.insights.threats

    def test_peer_has_no_competitor_threats(self):
        subject = make_data("subject", followers=1000, posts=_posts(50))
        baseline = make_data("baseline", followers=10_000, posts=_posts(100))
        analysis = competitive.analyze(subject, baseline, ComparisonType.PEER)
        assert analysis.insights.threats == []

    def test_recommendations_capped(self):
        subject = make_data("subject", posts=_posts(5, count=2, spacing=30))
        baseline = make_data("baseline", posts=_posts(100))
        analysis = competitive.analyze(subject, baseline, ComparisonType.COMPETITOR)
        assert 1 <= len(analysis.recommendations) <= 6


class TestMatrix:
    def test_self_row_and_ordering(self):
        brand = make_data("brand", posts=_posts(100, hashtags=["beer"]))
        weak = make_data("weak", posts=_posts(1, count=2, spacing=40))
        strong = make_data("strong", posts=_posts(300, hashtags=["beer"]))

        baseline = competitive.analyze(brand, brand, ComparisonType.SELF)
        analyses = [
            competitive.analyze(weak, brand, ComparisonType.COMPETITOR),
            competitive.analyze(strong, brand, ComparisonType.COMPETITOR),
        ]
        matrix = competitive.competitive_matrix(analyses, baseline)

        brand_row = next(row for row in matrix if row.username == "brand")
        assert brand_row.avg_engagement == 100
        assert brand_row.content_score == 100
        scores = [row.overall_score for row in matrix]
        assert scores == sorted(scores, reverse=True)

    def _rows(self, *names):
        return [
            MatrixRow(username=n, followers=0, avg_engagement=0, post_frequency=0, content_score=0, overall_score=0)
            for n in names
        ]

    def test_market_position(self):
        assert "leads the market" in competitive.market_position(self._rows("brand", "a", "b"), "brand")
        assert "strong challenger" in competitive.market_position(self._rows("a", "brand", "b"), "brand")
        assert "room for competitive improvement" in competitive.market_position(
            self._rows("a", "b", "c", "brand"), "brand"
        )
        assert "without a brand baseline" in competitive.market_position(self._rows("a"), "brand")


class TestCompareProfiles:
    def test_leader_and_opportunities(self):
        leader = make_data("leader", posts=[make_post(likes=95, comments=5, days_ago=i) for i in range(6)])
        trailing = make_data("trailing", posts=[make_post(likes=45, comments=5, days_ago=i) for i in range(6)])
        result = competitive.compare_profiles([leader, trailing])

        assert result.leader == "leader"
        assert result.comparison["leader"].engagement_rate == 10.0
        assert result.comparison["trailing"].engagement_rate == 5.0
        assert result.opportunities == ["trailing has 50.0% lower engagement rate"]
        assert result.recommendations == []

    def test_frequency_recommendation(self):
        leader = make_data("leader", posts=[make_post(likes=95, days_ago=i) for i in range(6)])
        slow = make_data("slow", posts=[make_post(likes=95, days_ago=i * 30) for i in range(6)])
        result = competitive.compare_profiles([leader, slow])
        assert result.recommendations == ["slow should increase posting frequency to match leader"]

    def test_first_profile_wins_ties(self):
        a = make_data("a")
        b = make_data("b")
        assert competitive.compare_profiles([a, b]).leader == "a"

    def test_empty(self):
        result = competitive.compare_profiles([])
        assert result.leader is None
        assert result.comparison == {}
