"""Audit engines that evaluate a website and score it per category"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

import httpx
from bs4 import BeautifulSoup

from sitewatch.core.config import settings
from sitewatch.db.enums import AuditCategory

logger = logging.getLogger(__name__)

# Share of images without alt text that makes the page a critical failure
CRITICAL_MISSING_ALT_RATIO = 0.5


@dataclass
class EngineResult:
    """Scores (0-100) and findings produced by an engine run"""
    scores: Dict[str, float]
    issues: Dict[str, List[str]] = field(default_factory=dict)
    critical_issues: List[str] = field(default_factory=list)

    @property
    def overall_score(self) -> Optional[float]:
        if not self.scores:
            return None
        return round(sum(self.scores.values()) / len(self.scores), 1)


class AuditEngine(Protocol):
    """Anything that can audit a URL for the given categories"""

    async def run(self, url: str, categories: Sequence[str]) -> EngineResult:
        ...


@dataclass
class PageSnapshot:
    """A fetched page plus the response facts the checks need"""
    url: str
    soup: BeautifulSoup
    headers: httpx.Headers
    response_time_ms: int
    size_kb: float


class HttpAuditEngine:
    """
    Lightweight engine that fetches a single page with httpx and inspects
    its HTML with BeautifulSoup.
    """

    def __init__(self, timeout: int = 30, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._client = client

    def _make_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={
                'User-Agent': 'Mozilla/5.0 (compatible; SitewatchBot/1.0)'
            }
        )

    async def fetch(self, url: str) -> PageSnapshot:
        """Fetch ``url``; raises httpx errors on network or HTTP failure"""
        client = self._client or self._make_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        finally:
            if self._client is None:
                await client.aclose()

        html = response.text
        try:
            elapsed_ms = int(response.elapsed.total_seconds() * 1000)
        except RuntimeError:
            # elapsed is only set once the response has been read via a transport
            elapsed_ms = 0

        return PageSnapshot(
            url=str(response.url),
            soup=BeautifulSoup(html, 'html.parser'),
            headers=response.headers,
            response_time_ms=elapsed_ms,
            size_kb=round(len(html.encode('utf-8')) / 1024, 2),
        )

    async def run(self, url: str, categories: Sequence[str]) -> EngineResult:
        logger.info(f"Auditing {url} for categories {list(categories)}")
        page = await self.fetch(url)

        checks = {
            AuditCategory.SEO.value: self._check_seo,
            AuditCategory.PERFORMANCE.value: self._check_performance,
            AuditCategory.ACCESSIBILITY.value: self._check_accessibility,
            AuditCategory.SECURITY.value: self._check_security,
            AuditCategory.CONTENT.value: self._check_content,
            AuditCategory.MOBILE.value: self._check_mobile,
        }

        result = EngineResult(scores={})
        for category in categories:
            check = checks.get(category)
            if check is None:
                continue
            score, issues = check(page)
            result.scores[category] = round(max(0.0, min(100.0, score)), 1)
            result.issues[category] = issues

        result.critical_issues = self._critical_issues(page)
        return result

    def _check_seo(self, page: PageSnapshot):
        soup = page.soup
        score = 100.0
        issues: List[str] = []

        title = soup.find('title')
        if title and title.text.strip():
            length = len(title.text.strip())
            if length < 30 or length > 60:
                score -= 10
                issues.append('Title tag length should be 30-60 characters')
        else:
            score -= 25
            issues.append('Missing title tag')

        meta_desc = soup.find('meta', {'name': 'description'})
        if not (meta_desc and meta_desc.get('content', '').strip()):
            score -= 20
            issues.append('Missing meta description')

        h1_tags = soup.find_all('h1')
        if not h1_tags:
            score -= 20
            issues.append('Missing H1 tag')
        elif len(h1_tags) > 1:
            score -= 10
            issues.append(f'Multiple H1 tags found ({len(h1_tags)})')

        if not soup.find('link', {'rel': 'canonical'}):
            score -= 10
            issues.append('Missing canonical link tag')

        robots = soup.find('meta', {'name': 'robots'})
        if robots and 'noindex' in robots.get('content', '').lower():
            score -= 40
            issues.append('Page has noindex directive')

        return score, issues

    def _check_performance(self, page: PageSnapshot):
        score = 100.0
        issues: List[str] = []

        if page.response_time_ms > 3000:
            score -= 30
            issues.append(f'Slow response time: {page.response_time_ms}ms')
        elif page.response_time_ms > 1000:
            score -= 10
            issues.append(f'Response time could be improved: {page.response_time_ms}ms')

        if page.size_kb > 2000:
            score -= 25
            issues.append(f'Page size too large: {page.size_kb}KB')
        elif page.size_kb > 1000:
            score -= 10
            issues.append(f'Page size could be optimized: {page.size_kb}KB')

        if 'content-encoding' not in page.headers:
            score -= 10
            issues.append('Response not compressed (enable gzip/brotli)')

        scripts = page.soup.find_all('script', src=True)
        if len(scripts) > 20:
            score -= 10
            issues.append(f'Too many external scripts ({len(scripts)})')

        return score, issues

    def _check_accessibility(self, page: PageSnapshot):
        soup = page.soup
        score = 100.0
        issues: List[str] = []

        html_tag = soup.find('html')
        if not (html_tag and html_tag.get('lang')):
            score -= 15
            issues.append('Missing lang attribute on <html> tag')

        images = soup.find_all('img')
        missing_alt = [img for img in images if img.get('alt') is None]
        if images and missing_alt:
            ratio = len(missing_alt) / len(images)
            score -= ratio * 40
            issues.append(f'{len(missing_alt)} of {len(images)} images missing alt text')

        inputs = soup.find_all(['input', 'select', 'textarea'])
        labelled_ids = {label.get('for') for label in soup.find_all('label') if label.get('for')}
        unlabelled = [
            field_tag for field_tag in inputs
            if field_tag.get('type') not in ('hidden', 'submit', 'button')
            and field_tag.get('id') not in labelled_ids
            and not field_tag.get('aria-label')
        ]
        if unlabelled:
            score -= min(20, 5 * len(unlabelled))
            issues.append(f'{len(unlabelled)} form fields without labels')

        return score, issues

    def _check_security(self, page: PageSnapshot):
        score = 100.0
        issues: List[str] = []

        if not page.url.startswith('https://'):
            score -= 40
            issues.append('Not using HTTPS')

        expected_headers = {
            'strict-transport-security': 15,
            'content-security-policy': 15,
            'x-content-type-options': 10,
            'x-frame-options': 10,
        }
        for header, penalty in expected_headers.items():
            if header not in page.headers:
                score -= penalty
                issues.append(f'Missing {header} header')

        return score, issues

    def _check_content(self, page: PageSnapshot):
        soup = page.soup
        score = 100.0
        issues: List[str] = []

        body = soup.find('body')
        word_count = len(body.get_text(separator=' ', strip=True).split()) if body else 0
        if word_count < 300:
            score -= 25
            issues.append(f'Content too short ({word_count} words, should be at least 300)')

        headings = soup.find_all(['h1', 'h2', 'h3', 'h4', 'h5', 'h6'])
        if not headings:
            score -= 20
            issues.append('No heading structure found')
        else:
            prev_level = 0
            for heading in headings[:10]:
                level = int(heading.name[1])
                if level > prev_level + 1:
                    score -= 10
                    issues.append('Heading hierarchy skipped (e.g., H1 to H3)')
                    break
                prev_level = level

        return score, issues

    def _check_mobile(self, page: PageSnapshot):
        soup = page.soup
        score = 100.0
        issues: List[str] = []

        viewport = soup.find('meta', {'name': 'viewport'})
        if not viewport:
            score -= 50
            issues.append('Missing viewport meta tag')
        elif 'width=device-width' not in viewport.get('content', '').replace(' ', ''):
            score -= 20
            issues.append('Viewport does not use width=device-width')

        return score, issues

    def _critical_issues(self, page: PageSnapshot) -> List[str]:
        critical: List[str] = []
        if not page.url.startswith('https://'):
            critical.append('Site is not served over HTTPS')
        if not page.soup.find('meta', {'name': 'viewport'}):
            critical.append('Missing viewport meta tag')
        images = page.soup.find_all('img')
        if images:
            missing = sum(1 for img in images if img.get('alt') is None)
            if missing / len(images) > CRITICAL_MISSING_ALT_RATIO:
                critical.append(f'{missing} of {len(images)} images are missing alt text')
        return critical


def get_default_engine() -> AuditEngine:
    """Engine used by services when none is injected"""
    return HttpAuditEngine(timeout=settings.audit_timeout_seconds)
