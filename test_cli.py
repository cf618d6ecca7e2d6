"""
Test Occupancy CLI (Without Real Broker)
========================================

Usage:
    pytest test_cli.py
"""

import argparse
from pathlib import Path

import cv2
import numpy as np
import pytest

from occupancy_cli.cli import build_command, estimate_offline, load_yaml_config


def test_build_command_payloads():
    args = argparse.Namespace(command='analyze-image', place_id='cafe', image_ref=None)
    assert build_command(args) == {'command': 'analyze_image', 'place_id': 'cafe'}

    args = argparse.Namespace(command='analyze-image', place_id='cafe', image_ref='/uploads/a.jpg')
    assert build_command(args)['image_ref'] == '/uploads/a.jpg'

    args = argparse.Namespace(command='set-capacity', place_id='cafe', capacity=32)
    assert build_command(args) == {'command': 'set_capacity', 'place_id': 'cafe', 'capacity': 32}

    args = argparse.Namespace(command='live', place_id='hall')
    assert build_command(args) == {'command': 'get_live_data', 'place_id': 'hall'}

    with pytest.raises(ValueError):
        build_command(argparse.Namespace(command='estimate'))


def test_send_loads_yaml(tmp_path: Path):
    path = tmp_path / "cmd.yaml"
    path.write_text("command: list_places\n")
    assert build_command(argparse.Namespace(command='send', config=str(path))) == {
        'command': 'list_places'
    }

    with pytest.raises(FileNotFoundError):
        load_yaml_config(str(tmp_path / "missing.yaml"))

    broken = tmp_path / "broken.yaml"
    broken.write_text("command: [unclosed\n")
    with pytest.raises(ValueError):
        load_yaml_config(str(broken))


def test_estimate_offline_image(tmp_path: Path):
    image = np.random.default_rng(3).integers(0, 256, size=(120, 160, 3), dtype=np.uint8)
    path = tmp_path / "room.png"
    assert cv2.imwrite(str(path), image)

    first = estimate_offline(str(path), capacity=12, seed=5)
    second = estimate_offline(str(path), capacity=12, seed=5)

    assert first['placeId'] == 'local'
    assert first['placeName'] == 'room.png'
    assert len(first['seats']) == 12
    assert sum(len(t['seats']) for t in first['tables']) == 12
    assert 5 <= first['occupancyPercent'] <= 98
    assert first['occupancyPercent'] == second['occupancyPercent']
    assert first['seats'] == second['seats']

    with pytest.raises(FileNotFoundError):
        estimate_offline(str(tmp_path / "missing.png"), capacity=12)
