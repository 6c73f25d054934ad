"""Tests for identifier normalization."""

import pytest

from avscraper.identifiers.normalizer import IdentifierNormalizer, classify, normalize
from avscraper.identifiers.studios import StudioMap
from avscraper.models.identifier import Identifier, IdFormat, NormalizationError


class TestIdentifierNormalizer:
    """Test cases for IdentifierNormalizer."""

    @pytest.fixture
    def normalizer(self):
        return IdentifierNormalizer()

    def test_standard_filename(self, normalizer):
        """A plain standard id in a filename."""
        result = normalizer.normalize("IPX-177.mp4")

        assert isinstance(result, Identifier)
        assert result.normalized == "IPX-177"
        assert result.series == "IPX"
        assert result.number == "177"
        assert result.format == IdFormat.STANDARD
        assert result.studio == "IdeaPocket"

    def test_fc2_with_subtitle_suffix(self, normalizer):
        """Subtitle suffixes are stripped before matching FC2 ids."""
        result = normalizer.normalize("FC2-PPV-1234567_sub.mp4")

        assert result.normalized == "FC2-PPV-1234567"
        assert result.series == "FC2-PPV"
        assert result.number == "1234567"
        assert result.format == IdFormat.FC2
        assert result.studio == "FC2"

    @pytest.mark.parametrize("raw, expected", [
        ("ipx177.mp4", "IPX-177"),
        ("[Site] SSIS-001-C.mp4", "SSIS-001"),
        ("www.example.com@ABP-123.mkv", "ABP-123"),
        ("ABW-001 1080p.mp4", "ABW-001"),
        ("fc2ppv 1234567.mp4", "FC2-PPV-1234567"),
        ("FC2_PPV_7654321.avi", "FC2-PPV-7654321"),
        ("259LUXU-1234.mp4", "259LUXU-1234"),
        ("HEYZO-1234.mp4", "HEYZO-1234"),
        ("012023-001.mp4", "012023-001"),
    ])
    def test_noisy_inputs(self, normalizer, raw, expected):
        """Noise tokens and separator variants resolve to the canonical form."""
        result = normalizer.normalize(raw)
        assert result, f"{raw} did not normalize: {result}"
        assert result.normalized == expected

    def test_content_id_kept_lowercase(self, normalizer):
        """Lower-case DMM content ids are recognized on the raw stem."""
        result = normalizer.normalize("h_1234abc00123.mp4")

        assert result.format == IdFormat.CONTENT_ID
        assert result.normalized == "h_1234abc00123"

    def test_parent_directory_fallback(self, normalizer):
        """When the file name has no id the parent directory is used."""
        result = normalizer.normalize("/videos/IPX-177/part1.mp4")
        assert result.normalized == "IPX-177"

    def test_parent_depth_limit(self):
        """Parent directories beyond the configured depth are ignored."""
        normalizer = IdentifierNormalizer(max_parent_depth=0)
        result = normalizer.normalize("/videos/IPX-177/part1.mp4")
        assert isinstance(result, NormalizationError)

    def test_no_identifier(self, normalizer):
        """Inputs without an id return a falsy NormalizationError."""
        result = normalizer.normalize("holiday movie.mp4")

        assert isinstance(result, NormalizationError)
        assert not result
        assert result.raw == "holiday movie.mp4"

    def test_empty_input(self, normalizer):
        result = normalizer.normalize("   ")
        assert isinstance(result, NormalizationError)
        assert result.reason == "empty input"

    @pytest.mark.parametrize("raw", [
        "IPX-177.mp4", "FC2-PPV-1234567_sub.mp4", "[Site] SSIS-001-C.mp4",
        "259LUXU-1234.mp4", "HEYZO-1234.mp4", "h_1234abc00123.mp4",
    ])
    def test_idempotence(self, normalizer, raw):
        """Normalizing a canonical form yields the same canonical form."""
        first = normalizer.normalize(raw)
        second = normalizer.normalize(first.normalized)
        assert second.normalized == first.normalized

    def test_identifier_equality_by_normalized(self, normalizer):
        """Identifiers compare equal on their canonical form only."""
        a = normalizer.normalize("IPX-177.mp4")
        b = normalizer.normalize("ipx177.mkv")

        assert a == b
        assert hash(a) == hash(b)
        assert a.raw != b.raw

    def test_custom_ignore_patterns(self):
        """Custom ignore patterns replace the default list."""
        normalizer = IdentifierNormalizer(ignore_patterns=[r'SITENAME'])
        result = normalizer.normalize("SITENAME-IPX-177.mp4")
        assert result.normalized == "IPX-177"

    def test_invalid_ignore_pattern(self):
        with pytest.raises(ValueError):
            IdentifierNormalizer(ignore_patterns=['(unclosed'])

    def test_negative_parent_depth(self):
        with pytest.raises(ValueError):
            IdentifierNormalizer(max_parent_depth=-1)

    def test_search_keywords(self, normalizer):
        identifier = normalizer.normalize("IPX-177")
        keywords = normalizer.search_keywords(identifier)

        assert keywords[0] == "IPX-177"
        assert "IPX177" in keywords
        assert "ipx00177" in keywords
        assert len(keywords) == len(set(keywords))

    def test_custom_studio_map(self):
        studio_map = StudioMap(prefixes={'ABC': 'Alphabet'})
        normalizer = IdentifierNormalizer(studio_map=studio_map)

        assert normalizer.normalize("ABC-123").studio == "Alphabet"
        assert normalizer.normalize("XYZ-123").studio is None


class TestClassify:
    """Test cases for format classification."""

    @pytest.mark.parametrize("value, expected", [
        ("IPX-177", IdFormat.STANDARD),
        ("FC2-PPV-1234567", IdFormat.FC2),
        ("GETCHU-12345", IdFormat.DOUJIN),
        ("h_1234abc00123", IdFormat.CONTENT_ID),
        ("", IdFormat.UNKNOWN),
        ("nothing here", IdFormat.UNKNOWN),
    ])
    def test_classify_strings(self, value, expected):
        assert classify(value) == expected

    def test_classify_identifier(self):
        identifier = normalize("FC2-PPV-1234567")
        assert classify(identifier) == IdFormat.FC2


class TestStudioMap:
    """Test cases for StudioMap."""

    def test_bundled_table_loads(self):
        studio_map = StudioMap.from_file()
        assert len(studio_map) > 0
        assert studio_map.lookup("ipx") == "IdeaPocket"

    def test_amateur_prefix_digits_ignored(self):
        studio_map = StudioMap(prefixes={'LUXU': 'Luxury'})
        assert studio_map.lookup("259LUXU") == "Luxury"

    def test_missing_file(self, tmp_path):
        studio_map = StudioMap.from_file(tmp_path / "missing.yaml")
        assert len(studio_map) == 0
        assert studio_map.lookup("IPX") is None

    def test_family_lookup(self):
        studio_map = StudioMap(families={'fc2': 'FC2'})
        assert studio_map.for_family("FC2") == "FC2"
        assert studio_map.for_family(None) is None
