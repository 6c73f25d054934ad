"""
FC2 marketplace adapter
"""

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from .base_scraper import SourceAdapter, parse_date, parse_runtime
from ..models.identifier import Identifier, IdFormat
from ..models.record import Record
from ..models.response import HttpResponse
from ..models.scrape_result import ScrapeRequest
from ..utils.error_handler import MovieNotFound
from ..utils.http_client import HttpClient


NOT_FOUND_MARKERS = (
    '指定された商品(コンテンツ)は存在しません',
    'お探しの商品が見つかりません',
)


class FC2Adapter(SourceAdapter):
    """Adapter for adult.contents.fc2.com article pages."""

    name = "fc2"
    supported_formats = frozenset({IdFormat.FC2})

    BASE_URL = "https://adult.contents.fc2.com"

    def __init__(self, http_client: Optional[HttpClient] = None):
        super().__init__(http_client)
        self.logger = logging.getLogger(__name__)

    def article_url(self, identifier: Identifier) -> str:
        return f"{self.BASE_URL}/article/{identifier.number}/"

    async def fetch(self, identifier: Identifier, request: Optional[ScrapeRequest] = None) -> HttpResponse:
        url = self.article_url(identifier)
        self.logger.info(f"Fetching FC2 article for {identifier}")
        return await self.http_client.get(
            url,
            headers={'Cookie': 'age_check_done=1'},
            request=request,
        )

    def parse(self, identifier: Identifier, response: HttpResponse) -> Record:
        """Parse an article page; raises MovieNotFound for removed articles."""
        html = response.text
        if any(marker in html for marker in NOT_FOUND_MARKERS):
            raise MovieNotFound(f"FC2 article for {identifier} does not exist", self.name,
                                identifier.normalized)

        soup = BeautifulSoup(html, 'lxml')
        header = soup.find('section', class_='items_article_headerTitleInArea')
        if not header:
            raise MovieNotFound(f"FC2 page for {identifier} has no article header", self.name,
                                identifier.normalized)

        title = None
        title_tag = header.find('h3')
        if title_tag:
            # Hidden spans inject junk characters into the title
            for hidden in title_tag.find_all('span', style=lambda v: v and 'zoom:0.01' in v):
                hidden.decompose()
            title = title_tag.get_text(strip=True)

        cover_url = None
        thumb = header.find('div', class_='items_article_MainitemThumb')
        cover_img = thumb.find('img') if thumb else None
        if cover_img and cover_img.get('src'):
            cover_url = self._absolute(cover_img['src'])

        seller = None
        seller_tag = header.find('a', href=re.compile(r'/users/'))
        if seller_tag:
            seller = seller_tag.get_text(strip=True)

        release_date = None
        for section in header.find_all('div', class_='items_article_Releasedate'):
            release_date = parse_date(section.get_text(' ', strip=True))
            if release_date:
                break
        if release_date is None:
            for section in header.find_all('div', class_='items_article_softDevice'):
                release_date = parse_date(section.get_text(' ', strip=True))
                if release_date:
                    break

        runtime = None
        duration_tag = soup.find('p', class_='items_article_info')
        if duration_tag:
            runtime = parse_runtime(duration_tag.get_text(strip=True))

        tags: List[str] = []
        tag_section = soup.find('section', class_='items_article_TagArea')
        if tag_section:
            tags = [a.get_text(strip=True) for a in tag_section.find_all('a', class_='tag')]

        screenshots: List[str] = []
        preview_section = soup.find('section', class_='items_article_SampleImages')
        if preview_section:
            screenshots = [self._absolute(a['href']) for a in preview_section.find_all('a', href=True)]

        synopsis = None
        description = soup.find('section', class_='items_article_Contents')
        if description:
            synopsis = description.get_text(' ', strip=True)

        return Record(
            identifier=identifier.normalized,
            source=self.name,
            source_url=response.url,
            title=title,
            synopsis=synopsis,
            release_date=release_date,
            runtime=runtime,
            studio=seller or identifier.studio,
            tags=tags,
            cover_url=cover_url,
            screenshots=screenshots,
        )

    def _absolute(self, url: str) -> str:
        return 'https:' + url if url.startswith('//') else url
