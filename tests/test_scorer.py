from mediahub_app.metadata.models import MediaType, ProviderType, SUMMARY_MISSING
from mediahub_app.search.scorer import calculate_completeness_score


def test_bare_non_primary_item_scores_zero(make_item):
    item = make_item(source_type=ProviderType.DOUBAN, source_id="1889243")
    assert calculate_completeness_score(item) == 0


def test_primary_provider_bonus(make_item):
    assert calculate_completeness_score(make_item()) == 10


def test_full_item_scores_every_weight(make_item):
    item = make_item(
        poster_url="https://image.tmdb.org/t/p/w500/poster.jpg",
        summary="一队探险家利用他们针对虫洞的新发现，超越人类对于太空旅行的极限。",
        rating_imdb=8.4,
        rating_douban=9.4,
        rating_bangumi=7.0,
        rating_maoyan=9.5,
        directors=["克里斯托弗·诺兰"],
    )
    # 20 + 15 + 10 + 10 + 10 + 8 + 8 + 10
    assert calculate_completeness_score(item) == 91


def test_summary_must_be_long_and_not_placeholder(make_item):
    source = ProviderType.MAOYAN
    short = make_item(source_type=source, summary="太短了")
    placeholder = make_item(source_type=source, summary=SUMMARY_MISSING)
    exactly_ten = make_item(source_type=source, summary="一二三四五六七八九十")
    eleven = make_item(source_type=source, summary="一二三四五六七八九十一")

    assert calculate_completeness_score(short) == 0
    assert calculate_completeness_score(placeholder) == 0
    assert calculate_completeness_score(exactly_ten) == 0
    assert calculate_completeness_score(eleven) == 15


def test_maoyan_rating_weighs_less(make_item):
    item = make_item(source_type=ProviderType.MAOYAN, rating_maoyan=9.1)
    assert calculate_completeness_score(item) == 8


def test_bangumi_anime_with_poster_and_rating(make_item):
    item = make_item(
        source_type=ProviderType.BANGUMI,
        source_id="9717",
        media_type=MediaType.ANIME,
        poster_url="https://lain.bgm.tv/pic/cover/l/x.jpg",
        rating_bangumi=8.1,
        directors=["荒木哲郎"],
    )
    assert calculate_completeness_score(item) == 20 + 10 + 8
