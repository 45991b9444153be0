"""
On-page SEO heuristic checker.

Scans rendered HTML once and scores it out of 100 across fifteen weighted
checks. Each finding lands in good points, improvement points (with a
green/yellow/red severity) or tips.
"""
import logging
import re
from html.parser import HTMLParser
from typing import Optional
from urllib.parse import urljoin, urlsplit

logger = logging.getLogger(__name__)

MAX_SCORE = 100

_WHITESPACE = re.compile(r'\s+')
_SKIP_TEXT_TAGS = {'script', 'style', 'noscript', 'template', 'title'}


class _PageParser(HTMLParser):
    """Collects the nodes the checks need in a single pass."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.title = None
        self.meta = {}
        self.link_tags = []
        self.anchors = []
        self.images = []
        self.script_types = []
        self.h1_texts = []
        self.h2_count = 0
        self.h3_count = 0
        self.body_chunks = []
        self.saw_body = False

        self._in_title = False
        self._title_chunks = []
        self._h1_chunks = None
        self._skip_depth = 0
        self._in_body = False
        self._all_chunks = []

    def handle_starttag(self, tag, attrs):
        attrs = {name.lower(): (value or '') for name, value in attrs}

        if tag == 'title' and self.title is None:
            self._in_title = True
        elif tag == 'meta':
            name = attrs.get('name', '').lower()
            if name and name not in self.meta:
                self.meta[name] = attrs.get('content')
        elif tag == 'link':
            self.link_tags.append(attrs)
        elif tag == 'a':
            self.anchors.append(attrs.get('href', ''))
        elif tag == 'img':
            self.images.append(attrs.get('alt', ''))
        elif tag == 'script':
            self.script_types.append(attrs.get('type', '').lower())
        elif tag == 'h1':
            self._h1_chunks = []
        elif tag == 'h2':
            self.h2_count += 1
        elif tag == 'h3':
            self.h3_count += 1
        elif tag == 'body':
            self._in_body = True
            self.saw_body = True

        if tag in _SKIP_TEXT_TAGS:
            self._skip_depth += 1

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)
        if tag in _SKIP_TEXT_TAGS:
            self._skip_depth -= 1

    def handle_endtag(self, tag):
        if tag == 'title' and self._in_title:
            self._in_title = False
            self.title = _WHITESPACE.sub(' ', ''.join(self._title_chunks)).strip()
        elif tag == 'h1' and self._h1_chunks is not None:
            self.h1_texts.append(''.join(self._h1_chunks))
            self._h1_chunks = None
        elif tag == 'body':
            self._in_body = False

        if tag in _SKIP_TEXT_TAGS and self._skip_depth > 0:
            self._skip_depth -= 1

    def handle_data(self, data):
        if self._in_title:
            self._title_chunks.append(data)
        if self._h1_chunks is not None:
            self._h1_chunks.append(data)
        if self._skip_depth:
            return
        self._all_chunks.append(data)
        if self._in_body:
            self.body_chunks.append(data)

    def close(self):
        super().close()
        if self._h1_chunks is not None:
            self.h1_texts.append(''.join(self._h1_chunks))
            self._h1_chunks = None
        if not self.saw_body:
            self.body_chunks = self._all_chunks

    def links_with_rel(self, *rels) -> list:
        wanted = {r.lower() for r in rels}
        return [link for link in self.link_tags if link.get('rel', '').lower().strip() in wanted]


class SeoCheck:
    """Outcome of one weighted check."""

    def __init__(self, key: str, label: str, max_points: int, points: int):
        self.key = key
        self.label = label
        self.max_points = max_points
        self.points = points

    @property
    def passed(self) -> bool:
        return self.points == self.max_points

    def __repr__(self):
        return f"<SeoCheck({self.key}: {self.points}/{self.max_points})>"


class SeoAnalysis:
    """Score plus bucketed findings."""

    def __init__(self):
        self.checks = []
        self.good_points = []
        self.improvement_points = []
        self.tips = []

    @property
    def score(self) -> int:
        raw = sum(check.points for check in self.checks)
        return max(0, min(round(raw), MAX_SCORE))

    def check(self, key: str) -> Optional[SeoCheck]:
        for item in self.checks:
            if item.key == key:
                return item
        return None

    def points_for(self, *keys) -> int:
        return sum(self.check(key).points for key in keys)

    def _record(self, key, label, max_points, passed):
        self.checks.append(SeoCheck(key, label, max_points, max_points if passed else 0))

    def good(self, key, label, max_points, message):
        self._record(key, label, max_points, True)
        self.good_points.append(message)

    def improve(self, key, label, max_points, message, color, tip=None):
        self._record(key, label, max_points, False)
        self.improvement_points.append({'text': message, 'color': color})
        if tip:
            self.tips.append(tip)


def analyze_page(html: str, page_url: str) -> SeoAnalysis:
    """
    Score a rendered page.

    Args:
        html: full page markup
        page_url: absolute URL the page is served from

    Returns:
        SeoAnalysis; identical input always gives identical output
    """
    parser = _PageParser()
    parser.feed(html or '')
    parser.close()

    result = SeoAnalysis()
    split = urlsplit(page_url)
    origin = f"{split.scheme}://{split.netloc}"

    # 1. Title
    title = parser.title
    if title and 10 <= len(title) <= 70:
        result.good('title', 'Title tag', 10, f'Optimal Title Tag length ({len(title)} characters).')
    elif title:
        result.improve('title', 'Title tag', 10,
                       f'Title tag length is {len(title)} characters (ideal: 10-70).', 'yellow',
                       '**Improve Title Tag:** Make your page title concise yet descriptive. Aim for 10-70 characters.')
    else:
        result.improve('title', 'Title tag', 10, 'Title tag is missing.', 'red',
                       '**Add Title Tag:** Every page must have a unique, descriptive <title> tag within the <head> section.')

    # 2. Meta description
    description = parser.meta.get('description')
    if description and 50 <= len(description) <= 160:
        result.good('meta_description', 'Meta description', 10,
                    f'Optimal Meta Description length ({len(description)} characters).')
    elif description:
        result.improve('meta_description', 'Meta description', 10,
                       f'Meta description length is {len(description)} characters (ideal: 50-160).', 'yellow',
                       '**Refine Meta Description:** Craft a compelling meta description between 50-160 characters.')
    else:
        result.improve('meta_description', 'Meta description', 10, 'Meta description is missing.', 'red',
                       '**Add Meta Description:** Include a meta description within the <head> section.')

    # 3. Single H1
    h1s = parser.h1_texts
    if len(h1s) == 1 and h1s[0].strip():
        result.good('h1', 'H1 heading', 8, 'Single, present, and non-empty H1 tag.')
    elif len(h1s) > 1:
        result.improve('h1', 'H1 heading', 8, f'Multiple H1 tags found ({len(h1s)}).', 'red',
                       '**Use Only One H1:** Each page should have only one H1. Use H2s and H3s for subheadings.')
    else:
        result.improve('h1', 'H1 heading', 8, 'H1 tag is missing or empty.', 'red',
                       '**Add an H1 Tag:** Give the page a clear H1 that reflects its primary subject.')

    # 4. Subheadings
    if parser.h2_count or parser.h3_count:
        result.good('subheadings', 'H2/H3 structure', 7,
                    f'Content is structured with {parser.h2_count} H2(s) and {parser.h3_count} H3(s).')
    else:
        result.improve('subheadings', 'H2/H3 structure', 7, 'No H2 or H3 tags detected.', 'yellow',
                       '**Improve Content Readability:** Break up your content using H2 and H3 subheadings.')

    # 5. Image alt text
    images = parser.images
    missing_alt = [alt for alt in images if not alt.strip()]
    if not images:
        result.good('image_alt', 'Image alt text', 10, 'No images found on the page (no alt text issues).')
    elif not missing_alt:
        result.good('image_alt', 'Image alt text', 10, 'All images have descriptive alt text.')
    else:
        percentage_missing = len(missing_alt) * 100 / len(images)
        result.improve('image_alt', 'Image alt text', 10,
                       f'{len(missing_alt)} out of {len(images)} images are missing alt text.',
                       'red' if percentage_missing > 50 else 'yellow',
                       '**Add Alt Text to Images:** Describe every image in its alt attribute.')

    # 6. Image optimisation (advice only)
    result.good('image_optimisation', 'Image optimisation', 5,
                'Awareness for Image Optimization is noted (general tip provided).')
    result.tips.append('**Optimize Images:** Compress images and serve modern formats such as WebP to keep pages fast.')

    # 7. Canonical
    canonical = parser.links_with_rel('canonical')
    if canonical and canonical[0].get('href') == page_url:
        result.good('canonical', 'Canonical link', 8,
                    'Canonical tag is present and self-referencing (good practice).')
    else:
        result.improve('canonical', 'Canonical link', 8, 'Canonical tag is missing or not self-referencing.', 'yellow',
                       '**Implement Canonical Tag:** Add <link rel="canonical" href="[YOUR_PAGE_URL]"> to the <head>.')

    # 8. Viewport
    viewport = parser.meta.get('viewport') or ''
    if 'width=device-width' in viewport:
        result.good('viewport', 'Viewport meta', 8, 'Viewport meta tag for mobile responsiveness is present.')
    else:
        result.improve('viewport', 'Viewport meta', 8,
                       'Viewport meta tag is missing, significantly impacting mobile-friendliness.', 'red',
                       '**Add Viewport Meta Tag:** Include <meta name="viewport" content="width=device-width, initial-scale=1.0">.')

    # 9. Robots
    robots = parser.meta.get('robots')
    if robots and 'noindex' in robots:
        result.improve('robots', 'Robots meta', 5,
                       'Robots meta tag contains "noindex", preventing search engines from indexing this page.', 'red',
                       '**Review Robots Meta Tag:** Remove noindex if this page should appear in search results.')
    else:
        result.good('robots', 'Robots meta', 5, 'Page is not explicitly set to "noindex" in robots meta tag.')

    # 10. Favicon
    favicons = parser.links_with_rel('icon') or parser.links_with_rel('shortcut icon')
    if favicons and favicons[0].get('href'):
        result.good('favicon', 'Favicon', 4, 'Favicon is present.')
    else:
        result.improve('favicon', 'Favicon', 4, 'Favicon is missing.', 'yellow',
                       '**Add a Favicon:** Include <link rel="icon" href="/favicon.ico"> in the head.')

    # 11/12. Links, resolved against the page URL
    resolved = [urljoin(page_url, href) for href in parser.anchors]
    internal = list(dict.fromkeys(href for href in resolved if href.startswith(origin) and href != page_url))
    external = [href for href in resolved if not href.startswith(origin) and href.startswith('http')]

    if len(internal) >= 5:
        result.good('internal_links', 'Internal links', 7,
                    f'Good number of internal links detected ({len(internal)} unique internal links).')
    elif internal:
        result.improve('internal_links', 'Internal links', 7,
                       f'Only {len(internal)} internal links detected. Consider adding more.', 'yellow',
                       '**Increase Internal Linking:** Link relevant keywords to other pages on the site.')
    else:
        result.improve('internal_links', 'Internal links', 7, 'No internal links detected on the page.', 'red',
                       '**Add Internal Links:** Link to other relevant pages within the site.')

    if external:
        result.good('external_links', 'External links', 3, f'External links present ({len(external)}).')
        result.tips.append('**Consider Authoritative External Links:** Link to high-authority resources where relevant.')
    else:
        result.improve('external_links', 'External links', 3, 'No external links detected.', 'green',
                       '**Consider External Links:** Linking to authoritative resources can add credibility.')

    # 13. Structured data
    if 'application/ld+json' in parser.script_types:
        result.good('structured_data', 'Structured data', 5, 'Structured data (Schema.org) scripts are present.')
    else:
        result.improve('structured_data', 'Structured data', 5, 'No structured data (Schema.org) scripts detected.',
                       'yellow', '**Implement Structured Data:** Add Schema.org markup such as Product or FAQPage.')

    # 14. Content length
    word_count = len(' '.join(parser.body_chunks).split())
    if word_count >= 300:
        result.good('content_length', 'Content length', 4,
                    f'Sufficient content length detected (approx. {word_count} words).')
    else:
        result.improve('content_length', 'Content length', 4,
                       f'Page has low content (approx. {word_count} words). Aim for at least 300 words for informational pages.',
                       'yellow', '**Expand Content:** Aim for at least 300 words on informational pages.')

    # 15. URL structure
    path = split.path + (f'?{split.query}' if split.query else '')
    clean = '?' not in path and '&' not in path and '//' not in path and not path.endswith('/')
    if clean and len(path) < 75:
        result.good('url_structure', 'URL structure', 3, 'Clean and concise URL structure.')
    else:
        result.improve('url_structure', 'URL structure', 3,
                       'URL might not be SEO-friendly (e.g., too long, contains parameters, or has trailing slashes).',
                       'yellow', '**Optimize URL Structure:** Use clean, descriptive and concise URLs.')

    logger.info(f"[SEO] {page_url} scored {result.score}/100")
    return result
