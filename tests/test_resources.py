from __future__ import annotations

import requests

from docexport.services.export.resources import (
    extension_for,
    prepare_resources,
    scan_remote_images,
)


def _img(url: str) -> str:
    return f"\\includegraphics[width=0.8\\textwidth]{{{url}}}"


def test_ordinals_follow_first_appearance():
    markup = "\n".join([_img("https://x/b.jpg"), _img("https://x/a.png"), _img("https://x/b.jpg")])
    images = scan_remote_images(markup)
    assert [(i.ordinal, i.url, i.filename) for i in images] == [
        (1, "https://x/b.jpg", "img_1.jpg"),
        (2, "https://x/a.png", "img_2.png"),
    ]


def test_local_and_non_http_targets_are_ignored(tmp_path, fake_session):
    markup = _img("figures/local.png") + _img("ftp://x/y.png")
    session = fake_session({})
    prepared = prepare_resources(markup, tmp_path, session=session)
    assert prepared.text == markup
    assert prepared.resources == []
    assert session.calls == []


def test_extension_derived_from_url_path():
    assert extension_for("https://x/y.png") == ".png"
    assert extension_for("https://x/photo.JPG?size=large#top") == ".jpg"
    assert extension_for("https://x/image") == ".png"
    assert extension_for("https://x/file.notanextension") == ".png"
    assert extension_for("https://x/") == ".png"


def test_successful_fetch_rewrites_every_occurrence(tmp_path, fake_session, fake_response):
    url = "https://x/y.png"
    markup = _img(url) + "\ntext\n" + "\\includegraphics{" + url + "}"
    session = fake_session({url: fake_response(200, b"PNGDATA")})

    prepared = prepare_resources(markup, tmp_path, session=session, timeout=5)

    local = (tmp_path / "img_1.png").as_posix()
    assert url not in prepared.text
    assert prepared.text.count(local) == 2
    assert (tmp_path / "img_1.png").read_bytes() == b"PNGDATA"
    assert prepared.resources == [tmp_path / "img_1.png"]
    assert session.calls == [url]
    assert session.timeouts == [5]


def test_failed_fetch_keeps_url_and_writes_nothing(tmp_path, fake_session, fake_response):
    good, missing, down = "https://x/good.gif", "https://x/missing.png", "https://x/down.png"
    markup = "\n".join([_img(missing), _img(good), _img(down)])
    session = fake_session(
        {
            missing: fake_response(404, b"", "Not Found"),
            good: fake_response(200, b"GIF"),
            down: requests.ConnectionError("refused"),
        }
    )

    prepared = prepare_resources(markup, tmp_path, session=session)

    assert missing in prepared.text
    assert down in prepared.text
    assert not (tmp_path / "img_1.png").exists()
    assert not (tmp_path / "img_3.png").exists()
    assert (tmp_path / "img_2.gif").read_bytes() == b"GIF"
    assert (tmp_path / "img_2.gif").as_posix() in prepared.text
    assert sorted(p.name for p in tmp_path.iterdir()) == ["img_2.gif"]


def test_ordinals_do_not_depend_on_completion_order(tmp_path, fake_session, fake_response):
    slow, fast = "https://x/slow.png", "https://x/fast.png"
    session = fake_session(
        {slow: fake_response(200, b"slow"), fast: fake_response(200, b"fast")},
        delays={slow: 0.2},
    )
    prepared = prepare_resources(_img(slow) + _img(fast), tmp_path, session=session, max_workers=2)
    assert (tmp_path / "img_1.png").read_bytes() == b"slow"
    assert (tmp_path / "img_2.png").read_bytes() == b"fast"
    assert prepared.resources == [tmp_path / "img_1.png", tmp_path / "img_2.png"]


def test_link_root_points_references_at_converter_mount(tmp_path, fake_session, fake_response):
    url = "https://x/y.png"
    session = fake_session({url: fake_response(200, b"PNG")})
    prepared = prepare_resources(_img(url), tmp_path, session=session, link_root="/data/")
    assert prepared.text == "\\includegraphics[width=0.8\\textwidth]{/data/img_1.png}"
    assert (tmp_path / "img_1.png").read_bytes() == b"PNG"
