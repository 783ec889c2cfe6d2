"""Tests for the Playwright fixture helpers."""
from __future__ import annotations

import asyncio

import pytest

from pagesync.errors import ElementNotFound
from pagesync.fixture import PlaywrightFixture
from tests.fakes import FakeRequest, FakeResponse

BASE_URL = "http://localhost:3000"


@pytest.fixture
def app(page, fast_config):
    return PlaywrightFixture(page, BASE_URL + "/", fast_config)


@pytest.mark.asyncio
async def test_goto_prefixes_server_url(app, page):
    await app.goto("/projects")
    await app.goto("/projects/1", wait_for_hydration=True)
    assert page.gotos == [
        ("http://localhost:3000/projects", None),
        ("http://localhost:3000/projects/1", "networkidle"),
    ]


@pytest.mark.asyncio
async def test_wait_for_url(app, page):
    await app.wait_for_url("/done", wait_for_hydration=True)
    assert page.url_waits == [("http://localhost:3000/done", "networkidle")]


@pytest.mark.asyncio
async def test_click_link_missing(app):
    with pytest.raises(ElementNotFound, match=r'Could not find link for a\[href="/nope"\]'):
        await app.click_link("/nope")


@pytest.mark.asyncio
async def test_click_link_waits_for_loader_request(app, page):
    loader = FakeRequest("http://localhost:3000/about?_data=routes/about")

    def navigate():
        page.emit("request", loader)
        asyncio.get_running_loop().call_later(0.02, page.emit, "requestfinished", loader)

    link = page.add_element('a[href="/about"]', on_click=navigate)
    await asyncio.wait_for(app.click_link("/about"), 1)

    assert link.clicks == 1
    assert page.listener_counts_at_click == [3]
    assert page.listener_count() == 0
    assert len(page.evaluations) == 1


@pytest.mark.asyncio
async def test_click_link_without_wait_skips_detector(app, page):
    link = page.add_element('a[href="/about"]')
    await app.click_link("/about", wait=False)
    assert link.clicks == 1
    assert page.registered == []


@pytest.mark.asyncio
async def test_click_submit_button_prefers_form_action(app, page):
    button = page.add_element('button[formAction="/login"]')
    page.add_element('form[action="/login"] button[type="submit"]')
    await app.click_submit_button("/login")
    assert button.clicks == 1


@pytest.mark.asyncio
async def test_click_submit_button_falls_back_to_form(app, page):
    button = page.add_element('form[action="/projects"] button[type="submit"][formMethod="post"]')
    await app.click_submit_button("/projects", method="post")
    assert button.clicks == 1


@pytest.mark.asyncio
async def test_click_submit_button_missing(app):
    with pytest.raises(ElementNotFound, match="Can't find button for: /projects") as excinfo:
        await app.click_submit_button("/projects", method="delete")
    assert excinfo.value.selector == 'form[action="/projects"] button[type="submit"][formMethod="delete"]'


@pytest.mark.asyncio
async def test_click_element(app, page):
    el = page.add_element("#increment")
    await app.click_element("#increment")
    assert el.clicks == 1
    with pytest.raises(ElementNotFound, match="Can't find element for: #decrement"):
        await app.click_element("#decrement")


@pytest.mark.asyncio
async def test_upload_file(app, page):
    field = page.add_element("#file")
    await app.upload_file("#file", "a.txt", "b.txt")
    assert field.files == ["a.txt", "b.txt"]
    with pytest.raises(ElementNotFound, match="Could not find input for: #avatar"):
        await app.upload_file("#avatar", "a.png")


@pytest.mark.asyncio
async def test_wait_for_network_after_returns_result(app, page):
    async def focus():
        page.emit("request", FakeRequest("/__livereload"))
        return "focused"

    result = await asyncio.wait_for(app.wait_for_network_after(focus, long_poll_allowance=1), 1)
    assert result == "focused"


@pytest.mark.asyncio
async def test_go_back(app, page):
    await app.go_back()
    await app.go_back(wait=False)
    assert page.back_calls == 2
    assert page.removed.count("request") == 1


def test_collect_data_responses(app, page):
    responses = app.collect_data_responses()
    page.emit("response", FakeResponse("http://localhost:3000/about?_data=routes/about"))
    page.emit("response", FakeResponse("http://localhost:3000/build/entry.js"))
    page.emit("response", FakeResponse("http://localhost:3000/?index&_data"))
    assert [r.url for r in responses] == [
        "http://localhost:3000/about?_data=routes/about",
        "http://localhost:3000/?index&_data",
    ]


def test_collect_responses_with_filter(app, page):
    everything = app.collect_responses()
    images = app.collect_responses(lambda url: url.path.endswith(".png"))
    page.emit("response", FakeResponse("http://localhost:3000/logo.png"))
    page.emit("response", FakeResponse("http://localhost:3000/"))
    assert len(everything) == 2
    assert [r.url for r in images] == ["http://localhost:3000/logo.png"]


@pytest.mark.asyncio
async def test_get_html(app, page):
    page.html = "<html><body><h1>Hi</h1></body></html>"
    page.fragments["h1"] = "<h1>Hi</h1>"
    assert await app.get_html() == page.html
    assert await app.get_html("h1") == "<h1>Hi</h1>"
    assert await app.get_html("h2") == ""


@pytest.mark.asyncio
async def test_is_ready_uses_config(app, page):
    page.ready_outcomes = [False, True]
    assert await app.is_ready() is True
    assert page.reloads == 1
