"""Mock pages and record builders for testing."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from avscraper.models.record import Record


JAVBUS_MOVIE_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>IPX-177 Sample Title - JavBus</title></head>
<body>
<div class="container">
  <h3>IPX-177 Sample Title</h3>
  <div class="row movie">
    <div class="col-md-9 screencap">
      <a class="bigImage" href="/pics/cover/6vze_b.jpg"><img src="/pics/cover/6vze_b.jpg" title="Sample Title"></a>
    </div>
    <div class="col-md-3 info">
      <p><span class="header">識別碼:</span> <span>IPX-177</span></p>
      <p><span class="header">發行日期:</span> 2018-08-01</p>
      <p><span class="header">長度:</span> 120分鐘</p>
      <p><span class="header">導演:</span> <a href="/director/1">Director Name</a></p>
      <p><span class="header">製作商:</span> <a href="/studio/1">IDEA POCKET</a></p>
      <p><span class="header">發行商:</span> <a href="/label/1">Tissue</a></p>
      <p><span class="header">系列:</span> <a href="/series/1">Series X</a></p>
      <p class="header">類別</p>
      <p>
        <span class="genre"><label><input type="checkbox"><a href="/genre/1">Drama</a></label></span>
        <span class="genre"><label><input type="checkbox"><a href="/genre/2">Solo</a></label></span>
      </p>
      <p class="star-show">演員</p>
      <p><span class="genre"><a href="/star/1">Actress A</a></span></p>
    </div>
  </div>
  <div id="star-div">
    <div class="avatar-box"><img src="/pics/actress/1.jpg" title="Actress A"></div>
    <div class="star-name"><a href="/star/1">Actress A</a></div>
  </div>
  <div id="sample-waterfall">
    <a class="sample-box" href="/pics/sample/1.jpg"><img src="/pics/sample/1s.jpg"></a>
    <a class="sample-box" href="https://pics.example.com/sample/2.jpg"><img src="/pics/sample/2s.jpg"></a>
  </div>
</div>
</body>
</html>
"""

JAVBUS_NOT_FOUND_PAGE = """<!DOCTYPE html>
<html>
<head><title>404 Page Not Found! - JavBus</title></head>
<body><div class="container"><h4>404 Page Not Found!</h4><p>The page you requested does not exist.</p></div></body>
</html>
"""

JAVBUS_LISTING_PAGE = """<!DOCTYPE html>
<html>
<head><title>IPX - JavBus</title></head>
<body>
<div id="waterfall">
  <div class="item"><a class="movie-box" href="https://www.javbus.com/IPX-177">
    <div class="photo-info"><span>First Title<br><date>IPX-177</date> / <date>2018-08-01</date></span></div>
  </a></div>
  <div class="item"><a class="movie-box" href="https://www.javbus.com/IPX-177_2018-09-01">
    <div class="photo-info"><span>Second Title<br><date>ipx-177_2018-09-01</date></span></div>
  </a></div>
</div>
</body>
</html>
"""

FC2_ARTICLE_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>FC2 Contents Market</title></head>
<body>
<section class="items_article_headerTitleInArea">
  <div class="items_article_MainitemThumb"><span><img src="//storage.fc2.com/cover.jpg"></span></div>
  <div class="items_article_headerInfo">
    <h3>Sample FC2 Title<span style="zoom:0.01">x</span></h3>
    <ul><li>by <a href="https://adult.contents.fc2.com/users/seller1/">Seller One</a></li></ul>
    <div class="items_article_softDevice"><p>販売日 : 2021/05/20</p></div>
  </div>
</section>
<p class="items_article_info">01:05:30</p>
<section class="items_article_TagArea">
  <a class="tag tagTag" href="/search/?tag=1">Amateur</a>
  <a class="tag tagTag" href="/search/?tag=2">Original</a>
</section>
<section class="items_article_Contents"><div>Description text here.</div></section>
<section class="items_article_SampleImages">
  <ul><li><a href="https://storage.fc2.com/s1.jpg"><img src="https://storage.fc2.com/s1_t.jpg"></a></li></ul>
</section>
</body>
</html>
"""

FC2_NOT_FOUND_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>FC2 Contents Market</title></head>
<body><div class="items_notfound_header">指定された商品(コンテンツ)は存在しません</div></body>
</html>
"""


class MockDataGenerator:
    """Generates mock pages and records for testing."""

    CAST = ['Actress A', 'Actress B', 'Actress C']
    TAGS = ['Drama', 'Solo', 'Beautiful Girl', 'Office Lady']

    @staticmethod
    def plain_page(title: str = "Sample page") -> str:
        """An ordinary HTML page that trips no detection signal."""
        return (
            "<html><head><title>{0}</title></head><body>"
            "<div class=\"content\"><p>{0}</p><p>Regular listing content for tests.</p></div>"
            "</body></html>"
        ).format(title)

    @staticmethod
    def challenge_page() -> str:
        return (
            "<html><head><title>Just a moment...</title></head><body>"
            "<div id=\"challenge\">Checking your browser before accessing the site.</div>"
            "</body></html>"
        )

    @classmethod
    def generate_record(
        cls,
        identifier: str = "IPX-177",
        source: str = "javbus",
        **overrides: Any
    ) -> Record:
        """Generate a populated Record; keyword arguments override fields."""
        values: Dict[str, Any] = {
            'identifier': identifier,
            'source': source,
            'source_url': f"https://www.{source}.com/{identifier}",
            'title': f"{identifier} Sample Title",
            'synopsis': "A sample synopsis.",
            'release_date': date(2018, 8, 1),
            'runtime': 120,
            'score': 8.5,
            'rating_votes': 42,
            'studio': "IdeaPocket",
            'cast': cls.CAST[:2],
            'tags': cls.TAGS[:3],
            'cover_url': f"https://pics.{source}.com/cover/{identifier}.jpg",
            'screenshots': [f"https://pics.{source}.com/sample/{identifier}-{i}.jpg" for i in range(1, 3)],
            'fetched_at': datetime(2024, 1, 1, 12, 0, 0),
        }
        values.update(overrides)
        return Record(**values)

    @classmethod
    def generate_record_batch(cls, identifiers: List[str], source: str = "javbus") -> List[Record]:
        return [cls.generate_record(identifier=i, source=source) for i in identifiers]

    @staticmethod
    def minimal_record(identifier: str = "IPX-177", source: str = "javbus",
                       title: Optional[str] = None) -> Record:
        return Record(identifier=identifier, source=source, title=title)
