"""
Unit tests for the on-page SEO checker.
"""
from app.services.seo_service import analyze_page

PAGE_URL = 'https://lumicea.com/shop/earrings'

GOOD_PAGE = """
<!doctype html>
<html>
<head>
  <title>Handmade Silver Earrings | Lumicea</title>
  <meta name="description" content="Discover handmade sterling silver earrings, from delicate studs to statement hoops, made in our UK studio.">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <meta name="robots" content="index, follow">
  <link rel="canonical" href="https://lumicea.com/shop/earrings">
  <link rel="icon" href="/static/favicon.ico">
  <script type="application/ld+json">{"@type": "CollectionPage"}</script>
</head>
<body>
  <h1>Silver Earrings</h1>
  <h2>Studs</h2>
  <img src="/a.jpg" alt="Silver studs">
  <a href="/">Home</a>
  <a href="/shop/">Shop</a>
  <a href="/shop/rings">Rings</a>
  <a href="/about">About</a>
  <a href="/care">Care</a>
  <a href="https://instagram.com/lumicea">Instagram</a>
  <p>{body}</p>
</body>
</html>
""".replace('{body}', 'silver ' * 320)


class TestAnalyzePage:

    def test_well_formed_page_passes_every_check(self):
        result = analyze_page(GOOD_PAGE, PAGE_URL)
        assert all(check.passed for check in result.checks)
        assert result.score == 97
        assert result.improvement_points == []
        assert len(result.checks) == 15

    def test_deterministic(self):
        first = analyze_page(GOOD_PAGE, PAGE_URL)
        second = analyze_page(GOOD_PAGE, PAGE_URL)
        assert first.score == second.score
        assert first.good_points == second.good_points
        assert first.tips == second.tips

    def test_empty_page(self):
        result = analyze_page('<html><body></body></html>', PAGE_URL)
        assert result.points_for('title', 'meta_description', 'h1', 'image_alt') == 10
        assert 'Title tag is missing.' in [p['text'] for p in result.improvement_points]
        assert 0 <= result.score < 50

    def test_title_meta_h1_and_alt_weights(self):
        html = (
            '<html><head><title>Handmade Silver Earrings</title>'
            '<meta name="description" content="' + 'x' * 80 + '"></head>'
            '<body><h1>Earrings</h1><img src="a.jpg" alt="Hoops"></body></html>'
        )
        result = analyze_page(html, PAGE_URL)
        assert result.points_for('title', 'meta_description', 'h1', 'image_alt') == 38

    def test_multiple_h1_is_red(self):
        result = analyze_page('<h1>One</h1><h1>Two</h1>', PAGE_URL)
        assert result.check('h1').points == 0
        assert {'text': 'Multiple H1 tags found (2).', 'color': 'red'} in result.improvement_points

    def test_missing_alt_severity(self):
        mostly_missing = analyze_page('<img src="a"><img src="b"><img src="c" alt="ok">', PAGE_URL)
        mostly_present = analyze_page('<img src="a"><img src="b" alt="x"><img src="c" alt="ok">', PAGE_URL)

        assert {'text': '2 out of 3 images are missing alt text.', 'color': 'red'} in mostly_missing.improvement_points
        assert {'text': '1 out of 3 images are missing alt text.', 'color': 'yellow'} in mostly_present.improvement_points

    def test_noindex_is_flagged(self):
        result = analyze_page('<meta name="robots" content="noindex, nofollow">', PAGE_URL)
        assert result.check('robots').points == 0

    def test_canonical_must_self_reference(self):
        html = '<link rel="canonical" href="https://lumicea.com/shop/rings">'
        assert analyze_page(html, PAGE_URL).check('canonical').points == 0

    def test_url_with_query_or_trailing_slash(self):
        assert analyze_page('', 'https://lumicea.com/shop/').check('url_structure').points == 0
        assert analyze_page('', 'https://lumicea.com/shop?sort=name').check('url_structure').points == 0
        assert analyze_page('', PAGE_URL).check('url_structure').points == 3

    def test_few_internal_links(self):
        result = analyze_page('<a href="/about">About</a><a href="/care">Care</a>', PAGE_URL)
        assert result.check('internal_links').points == 0
        assert {'text': 'Only 2 internal links detected. Consider adding more.', 'color': 'yellow'} \
            in result.improvement_points

    def test_missing_external_links_is_green(self):
        result = analyze_page('<p>text</p>', PAGE_URL)
        assert {'text': 'No external links detected.', 'color': 'green'} in result.improvement_points

    def test_page_without_images_earns_alt_points(self):
        html = (
            '<html><head><title>' + 'T' * 55 + '</title>'
            '<meta name="description" content="' + 'd' * 120 + '"></head>'
            '<body><h1>Our Story</h1></body></html>'
        )
        result = analyze_page(html, PAGE_URL)
        assert result.points_for('title', 'meta_description', 'h1', 'image_alt') == 10 + 10 + 8 + 10
