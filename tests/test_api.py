from __future__ import annotations

from pathlib import Path

from nexprobe.api import Client, Confidence, ExtractionStatus


def test_public_client_list_chips() -> None:
    client = Client()
    chips = client.list_chips()
    assert any(p.chip_id == "bcm43455c0" for p in chips)
    assert [c.version_id for c in client.recommendations("bcm43430a1")] == ["7_45_41_46", "7_45_41_26"]


def test_public_client_detect(fake_host) -> None:
    client = Client(probe=fake_host(properties={"ro.product.device": "hammerhead"}))
    report = client.detect()
    assert report.result.profile.chip_id == "bcm4339"
    assert report.result.confidence is Confidence.EXACT


def test_public_client_extract(tmp_path: Path) -> None:
    src = tmp_path / "fw"
    src.mkdir()
    (src / "fw_bcm4339.bin").write_bytes(b"fw")

    result = Client().extract(str(src), chip_id="bcm4339", version_id="6_37_34_43", output_root=tmp_path / "out")

    assert result.status is ExtractionStatus.SUCCESS
    assert result.files_written == ("fw_bcm4339.bin", "definitions.mk", "Makefile")
