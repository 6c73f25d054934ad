"""
JavBus adapter for fetching standard identifiers without login
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .base_scraper import SourceAdapter, parse_date, parse_runtime
from ..models.identifier import Identifier, IdFormat
from ..models.record import Record
from ..models.response import HttpResponse
from ..models.scrape_result import ScrapeRequest
from ..utils.anti_bot_detector import ExpectedStructure
from ..utils.error_handler import MovieDuplicate, MovieNotFound
from ..utils.http_client import HttpClient


# Placeholder names JavBus shows instead of cast members
INVALID_CAST_NAMES = {
    'censored', 'uncensored', 'western', '暂无', '未知', 'unknown', 'n/a', '-', '---'
}

# Info panel labels (traditional and simplified)
INFO_LABELS = {
    'release_date': ('發行日期', '发行日期'),
    'runtime': ('長度', '长度'),
    'director': ('導演', '导演'),
    'studio': ('製作商', '制作商'),
    'label': ('發行商', '发行商'),
    'series': ('系列',),
}


class JavBusAdapter(SourceAdapter):
    """Adapter for the JavBus website (no login required)."""

    name = "javbus"
    supported_formats = frozenset({IdFormat.STANDARD})

    BASE_URL = "https://www.javbus.com"

    # Age verification cookies
    COOKIES = 'existmag=mag; age=verified'

    EXPECTED = ExpectedStructure(forbidden=('driver-verify',))

    def __init__(self, http_client: Optional[HttpClient] = None):
        """
        Initialize JavBus adapter.

        Args:
            http_client: HTTP client instance for making requests
        """
        super().__init__(http_client)
        self.logger = logging.getLogger(__name__)

    def movie_url(self, identifier: Identifier) -> str:
        return f"{self.BASE_URL}/{identifier.normalized}"

    async def fetch(self, identifier: Identifier, request: Optional[ScrapeRequest] = None) -> HttpResponse:
        url = self.movie_url(identifier)
        self.logger.info(f"Fetching JavBus page for {identifier}")
        return await self.http_client.get(
            url,
            headers={'Cookie': self.COOKIES, 'Referer': self.BASE_URL},
            request=request,
            expected=self.EXPECTED,
        )

    def parse(self, identifier: Identifier, response: HttpResponse) -> Record:
        """
        Parse movie page HTML into a Record.

        Args:
            identifier: Identifier that was looked up
            response: Fetched movie page

        Returns:
            Parsed record

        Raises:
            MovieNotFound: The page is a not-found page or lacks the info panel
            MovieDuplicate: The page is a listing of several movies
        """
        soup = BeautifulSoup(response.text, 'lxml')

        page_title = soup.title.get_text(strip=True) if soup.title else ''
        if '404' in page_title:
            raise MovieNotFound(f"JavBus has no page for {identifier}", self.name, identifier.normalized)

        info_panel = soup.find('div', class_='info') or soup.find('div', class_='col-md-3')
        if not info_panel:
            candidates = self._listing_candidates(soup)
            if len(candidates) > 1:
                raise MovieDuplicate(
                    f"JavBus lists {len(candidates)} candidates for {identifier}",
                    self.name, identifier.normalized, candidates=candidates
                )
            raise MovieNotFound(f"JavBus page for {identifier} has no info panel", self.name,
                                identifier.normalized)

        info = self._parse_info_panel(info_panel)

        # Title carries the id as a prefix
        title_elem = soup.select_one('.container h3') or soup.find('h3')
        title = title_elem.get_text(strip=True) if title_elem else None
        if title and title.upper().startswith(identifier.normalized):
            title = title[len(identifier.normalized):].strip() or title

        cover_url = None
        cover_elem = soup.find('a', class_='bigImage')
        if cover_elem and cover_elem.get('href'):
            cover_url = self._absolute(cover_elem['href'])
        else:
            cover_img = soup.select_one('.bigImage img') or soup.find('img', class_='video-cover')
            if cover_img and cover_img.get('src'):
                cover_url = self._absolute(cover_img['src'])

        record = Record(
            identifier=identifier.normalized,
            source=self.name,
            source_url=response.url,
            title=title,
            release_date=parse_date(self._info_value(info, 'release_date')),
            runtime=parse_runtime(self._info_value(info, 'runtime')),
            director=self._info_value(info, 'director'),
            studio=self._info_value(info, 'studio') or identifier.studio,
            label=self._info_value(info, 'label'),
            series=self._info_value(info, 'series'),
            cast=self._parse_cast(soup, info_panel),
            tags=self._parse_tags(soup),
            cover_url=cover_url,
            screenshots=self._parse_screenshots(soup),
        )

        self.logger.info(f"Parsed JavBus record for {identifier} (completeness {record.completeness})")
        return record

    @staticmethod
    def _parse_info_panel(info_panel) -> Dict[str, str]:
        info = {}
        for p in info_panel.find_all('p'):
            text = p.get_text(' ', strip=True)
            for separator in ('：', ':'):
                if separator in text:
                    key, value = text.split(separator, 1)
                    info[key.strip()] = value.strip()
                    break
        return info

    @staticmethod
    def _info_value(info: Dict[str, str], field_name: str) -> Optional[str]:
        for label in INFO_LABELS[field_name]:
            value = info.get(label)
            if value:
                return value
        return None

    @staticmethod
    def _valid_cast_name(name: str) -> bool:
        return bool(name) and name.lower() not in INVALID_CAST_NAMES

    def _parse_cast(self, soup: BeautifulSoup, info_panel) -> List[str]:
        cast = []
        for container in soup.find_all('div', class_='star-name'):
            for link in container.find_all('a'):
                name = link.get_text(strip=True)
                if self._valid_cast_name(name):
                    cast.append(name)

        if not cast:
            for img in soup.select('.avatar-box img'):
                name = (img.get('title') or '').strip()
                if self._valid_cast_name(name):
                    cast.append(name)

        if not cast:
            for p in info_panel.find_all('p'):
                if '演員' in p.text or '女优' in p.text:
                    for link in p.find_all('a'):
                        name = link.get_text(strip=True)
                        if self._valid_cast_name(name):
                            cast.append(name)
        return cast

    @staticmethod
    def _parse_tags(soup: BeautifulSoup) -> List[str]:
        tags = [a.get_text(strip=True) for a in soup.select('.genre label a')]
        if not tags:
            genre_container = soup.find('div', class_='genre')
            if genre_container:
                tags = [a.get_text(strip=True) for a in genre_container.find_all('a')]
        return [t for t in tags if t]

    def _parse_screenshots(self, soup: BeautifulSoup) -> List[str]:
        sample_container = soup.find('div', id='sample-waterfall')
        if not sample_container:
            return []
        return [
            self._absolute(link['href'])
            for link in sample_container.find_all('a', href=True)
        ]

    @staticmethod
    def _listing_candidates(soup: BeautifulSoup) -> List[str]:
        """Identifiers of the movie boxes on a search or listing page."""
        candidates = []
        for box in soup.find_all('a', class_='movie-box', href=True):
            date_tag = box.find('date')
            code = date_tag.get_text(strip=True) if date_tag else box['href'].rstrip('/').rsplit('/', 1)[-1]
            code = code.upper()
            if code and code not in candidates:
                candidates.append(code)
        return candidates

    def _absolute(self, url: str) -> str:
        return urljoin(self.BASE_URL + '/', url)
