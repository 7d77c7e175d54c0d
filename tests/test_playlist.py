"""
Tests for playlist building: dedup, duration normalization and media choice
"""
import pytest

from display_client.api import APIError
from display_client.playlist import (
    MediaKind, MediaRef, PlaylistItem, build_playlist, live_content_ids, normalize_duration
)


@pytest.mark.parametrize('value', [None, 0, -3, 0.5, 'abc', True])
def test_bad_durations_fall_back_to_default(value):
    assert normalize_duration(value) == 15


@pytest.mark.parametrize('value', [1, 5, 15, 20, 2.5, 3600])
def test_valid_durations_are_kept(value):
    assert normalize_duration(value) == value


def test_custom_default_duration():
    assert normalize_duration(None, default=8) == 8


@pytest.mark.parametrize('content,expected', [
    ({'videoUrl': '/v.mp4', 'imageUrl': '/i.png', 'docUrl': '/d.pdf'}, MediaRef(MediaKind.VIDEO, '/v.mp4')),
    ({'imageUrl': '/i.png', 'docUrl': '/d.pdf'}, MediaRef(MediaKind.IMAGE, '/i.png')),
    ({'videoUrl': '', 'docUrl': '/d.pdf'}, MediaRef(MediaKind.DOCUMENT, '/d.pdf')),
    ({'videoUrl': None, 'imageUrl': '  '}, MediaRef(MediaKind.NONE)),
    ({}, MediaRef(MediaKind.NONE)),
])
def test_media_priority(content, expected):
    assert MediaRef.from_content(content) == expected


def test_live_content_ids_dedup_in_first_seen_order():
    records = [
        {'contentId': '3', 'status': 'active'},
        {'contentId': '1', 'status': 'active'},
        {'contentId': '3', 'status': 'active'},
        {'contentId': '2', 'status': 'paused'},
        {'contentId': '4', 'status': 'stopped'},
        {'contentId': ['1', '5'], 'status': 'active'},
    ]

    assert live_content_ids(records) == ['3', '1', '5']


def test_build_playlist_skips_unresolvable_content():
    catalogue = {
        '1': {'id': '1', 'title': 'One', 'duration': 5, 'imageUrl': '/one.png'},
        '3': {'id': '3', 'title': 'Three'},
    }

    def fetch(content_id):
        if content_id not in catalogue:
            raise APIError('Content not found', 404)
        return catalogue[content_id]

    records = [{'contentId': cid, 'status': 'active'} for cid in ('1', '2', '3', '1')]

    playlist = build_playlist(records, fetch)

    assert playlist == [
        PlaylistItem('1', 'One', 5, MediaRef(MediaKind.IMAGE, '/one.png')),
        PlaylistItem('3', 'Three', 15, MediaRef(MediaKind.NONE)),
    ]
    assert playlist[1].media.is_placeholder
