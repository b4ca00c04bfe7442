"""
Unit tests for CSV ingestion.
Tests blank-to-null coercion, timestamp normalisation and malformed-row handling.
"""
import pytest
import pandas as pd
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[3]))

from yt_analytics.ingest.csv_loader import (
    load_channel_csv,
    load_sources,
    load_video_csv,
    parse_count,
    parse_enum,
    parse_published,
)
from yt_analytics.tests.test_helpers import (
    CHANNEL_HEADER,
    VIDEO_HEADER,
    sample_channel_rows,
    sample_video_rows,
    write_csv,
)


class TestFieldParsers:
    """Test suite for single-column parsers"""

    def test_parse_count_blank_and_garbage(self):
        s = pd.Series(["10", "", "  ", "abc", "-5", "3.0", "2.5", "inf"])
        out = parse_count(s)
        assert out.iloc[0] == 10
        assert out.iloc[5] == 3
        for i in (1, 2, 3, 4, 6, 7):
            assert pd.isna(out.iloc[i]), f"index {i} should be null"
        assert str(out.dtype) == "Int64"

    def test_parse_count_zero_fill_only_blanks(self):
        s = pd.Series(["", "abc", "7"])
        out = parse_count(s, zero_fill=True)
        assert out.iloc[0] == 0, "blank becomes 0 under the zero policy"
        assert pd.isna(out.iloc[1]), "garbage is still null"
        assert out.iloc[2] == 7

    def test_parse_published_timezones(self):
        s = pd.Series([
            "2024-01-05T10:00:00Z",
            "2024-01-28T12:00:00+02:00",
            "2024-02-01",
            "2024-02-10T18:00:00.250Z",
            "2024-03-30T23:30:00-05:00",
            "",
            "not a date",
        ])
        out = parse_published(s, "UTC")
        assert list(out.iloc[:5]) == [
            "2024-01-05 10:00:00",
            "2024-01-28 10:00:00",
            "2024-02-01 00:00:00",
            "2024-02-10 18:00:00",
            "2024-03-31 04:30:00",
        ]
        assert out.iloc[5] is None
        assert out.iloc[6] is None

    def test_parse_published_other_timezone(self):
        out = parse_published(pd.Series(["2024-01-01T00:30:00Z"]), "America/New_York")
        assert out.iloc[0] == "2023-12-31 19:30:00"

    def test_parse_enum(self):
        out = parse_enum(pd.Series(["Short", " Live ", "short", "Podcast", ""]), ["Short", "Live"])
        assert list(out) == ["Short", "Live", None, None, None]


class TestLoadVideoCsv:
    """Test suite for the video export loader"""

    @pytest.fixture
    def video_csv(self, tmp_path):
        return write_csv(tmp_path / "video_data.csv", VIDEO_HEADER, sample_video_rows())

    def test_row_count_and_columns(self, video_csv):
        df = load_video_csv(video_csv)
        assert len(df) == 10
        assert list(df.columns) == VIDEO_HEADER

    def test_blank_fields_become_null(self, video_csv):
        df = load_video_csv(video_csv).set_index("video_id")
        row = df.loc["v06"]
        for col in ("published_date", "duration_seconds", "views", "likes", "comments"):
            assert pd.isna(row[col]), f"{col} should be null"
        assert pd.isna(df.loc["v09", "likes"])

    def test_zero_policy(self, video_csv):
        df = load_video_csv(video_csv, policy="zero").set_index("video_id")
        assert df.loc["v06", "views"] == 0
        assert df.loc["v09", "likes"] == 0
        assert pd.isna(df.loc["v06", "published_date"]), "dates are never zero-filled"

    def test_unknown_policy_rejected(self, video_csv):
        with pytest.raises(ValueError):
            load_video_csv(video_csv, policy="mean")

    def test_lf_line_endings(self, tmp_path):
        path = write_csv(tmp_path / "lf.csv", VIDEO_HEADER, sample_video_rows()[:2], line_terminator="\n")
        assert len(load_video_csv(path)) == 2

    def test_malformed_rows_are_kept(self, tmp_path):
        """Short rows are padded, long rows truncated; nothing is rejected"""
        path = tmp_path / "ragged.csv"
        lines = [
            ",".join(VIDEO_HEADER),
            '"r1","Short row","Regular","none","24"',
            '"r2","Long row","Regular","none","24","Ent","2024-01-01","60","100","5","5","extra","fields"',
            '"r3","Fine","Short","none","24","Ent","2024-01-02","30","10","1","1"',
        ]
        path.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
        df = load_video_csv(path).set_index("video_id")
        assert list(df.index) == ["r1", "r2", "r3"]
        assert pd.isna(df.loc["r1", "views"])
        assert df.loc["r2", "views"] == 100
        assert df.loc["r2", "comments"] == 5

    def test_invalid_utf8_bytes_do_not_reject_file(self, tmp_path, capsys):
        """A stray byte degrades one field; every row is still loaded"""
        path = tmp_path / "bad_bytes.csv"
        lines = [
            ",".join(VIDEO_HEADER).encode("utf-8"),
            b'"b1","Clean title","Regular","none","24","Ent","2024-01-01","60","100","5","5"',
            b'"b2","Broken \xff\xfe title","Regular","none","24","Ent","2024-01-02","60","200","7","3"',
            b'"b3","Fine","Short","none","24","Ent","2024-01-03","30","4\xff0","1","1"',
        ]
        path.write_bytes(b"\r\n".join(lines) + b"\r\n")

        df = load_video_csv(path).set_index("video_id")

        assert list(df.index) == ["b1", "b2", "b3"]
        assert df.loc["b2", "title"].startswith("Broken ")
        assert "\ufffd" in df.loc["b2", "title"]
        assert df.loc["b2", "views"] == 200
        assert pd.isna(df.loc["b3", "views"]), "a number with an undecodable byte is null"
        assert "[WARN]" in capsys.readouterr().out

    def test_rows_without_id_dropped_and_duplicates_keep_last(self, tmp_path):
        rows = [
            ["", "No id", "Regular", "none", "1", "A", "2024-01-01", "1", "1", "1", "1"],
            ["d1", "first", "Regular", "none", "1", "A", "2024-01-01", "1", "10", "1", "1"],
            ["d1", "second", "Regular", "none", "1", "A", "2024-01-01", "1", "20", "1", "1"],
        ]
        path = write_csv(tmp_path / "dups.csv", VIDEO_HEADER, rows)
        df = load_video_csv(path)
        assert list(df["video_id"]) == ["d1"]
        assert df.loc[0, "title"] == "second"
        assert df.loc[0, "views"] == 20

    def test_missing_column_raises(self, tmp_path):
        path = write_csv(tmp_path / "bad.csv", VIDEO_HEADER[:-1], [])
        with pytest.raises(ValueError, match="comments"):
            load_video_csv(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_video_csv(tmp_path / "nope.csv")


class TestLoadChannelCsv:
    """Test suite for the channel export loader"""

    def test_channels(self, tmp_path):
        path = write_csv(tmp_path / "channel_data.csv", CHANNEL_HEADER, sample_channel_rows())
        df = load_channel_csv(path).set_index("playlist_id")
        assert df.loc["UU_main", "subscribers"] == 125000
        assert pd.isna(df.loc["UU_clips", "subscribers"])

    def test_zero_policy_does_not_touch_channels(self, tmp_path):
        path = write_csv(tmp_path / "channel_data.csv", CHANNEL_HEADER, sample_channel_rows())
        df = load_channel_csv(path, policy="zero").set_index("playlist_id")
        assert pd.isna(df.loc["UU_clips", "subscribers"])

    def test_load_sources_uses_ingest_section(self, tmp_path):
        vpath = write_csv(tmp_path / "v.csv", VIDEO_HEADER, sample_video_rows())
        cpath = write_csv(tmp_path / "c.csv", CHANNEL_HEADER, sample_channel_rows())
        videos, channels = load_sources(vpath, cpath, {"missing_numeric": "zero", "timezone": "UTC"})
        assert videos.set_index("video_id").loc["v06", "views"] == 0
        assert len(channels) == 2
