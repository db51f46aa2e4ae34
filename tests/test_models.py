"""Tests for entry and channel models."""

import hashlib

import pytest
from pydantic import ValidationError

from conftest import make_entry
from tubecast.models import ChannelSpec, ChannelType


class TestEntry:
    """Tests for the Entry model."""

    def test_uid_joins_channel_and_video(self) -> None:
        entry = make_entry("vid1", channel_id="UC123")
        assert entry.uid == "UC123::vid1"

    def test_uid_follows_identity_fields(self) -> None:
        entry = make_entry("vid1")
        updated = entry.model_copy(update={"title": "Other", "file": "/tmp/x.mp3", "duration": 12})
        assert updated.uid == entry.uid

    def test_uid_in_serialization(self) -> None:
        data = make_entry("vid1").model_dump()
        assert data["uid"] == "chan1::vid1"

    def test_file_name_is_sha1_of_uid(self) -> None:
        entry = make_entry("vid1")
        assert entry.file_name() == hashlib.sha1(b"chan1::vid1").hexdigest()

    def test_defaults_for_unprocessed_entry(self) -> None:
        entry = make_entry("vid1")
        assert entry.file == ""
        assert entry.duration == 0
        assert entry.updated is None

    def test_str_contains_ids_and_title(self) -> None:
        text = str(make_entry("vid1", title="Hello"))
        assert "chan1" in text
        assert "vid1" in text
        assert "Hello" in text


class TestChannelSpec:
    """Tests for channel configuration."""

    def test_defaults(self) -> None:
        spec = ChannelSpec(id="UC1", name="Name")
        assert spec.type == ChannelType.CHANNEL
        assert spec.keep == 0
        assert spec.language == "en-us"

    def test_retention_falls_back_to_default(self) -> None:
        assert ChannelSpec(id="UC1", name="Name").retention(7) == 7

    def test_retention_uses_channel_keep(self) -> None:
        assert ChannelSpec(id="UC1", name="Name", keep=3).retention(7) == 3

    def test_playlist_type_from_string(self) -> None:
        spec = ChannelSpec.model_validate({"id": "PL1", "name": "List", "type": "playlist"})
        assert spec.type == ChannelType.PLAYLIST

    def test_negative_keep_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChannelSpec(id="UC1", name="Name", keep=-1)
