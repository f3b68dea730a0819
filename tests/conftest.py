# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import pageblocks  # noqa: F401
except ImportError:
    raise ImportError("pageblocks is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from pageblocks.dom import StaticRuntime


@pytest.fixture
def runtime():
    return StaticRuntime()


@pytest.fixture
def article_page():
    """A small article page exercising most block kinds."""
    return """<html><head><title>t</title></head><body>
<nav><a href="/">Home</a></nav>
<main>
  <h1>My Post</h1>
  <time datetime="2025-03-01">March 1</time>
  <article class="post">
    <p class="byline">Jane Doe</p>
    <h2 id="intro">Intro</h2>
    <p>See <a href="/docs">docs</a>.</p>
    <figure><img src="/img/cat.jpg"><figcaption>A <b>cat</b></figcaption></figure>
    <div class="ads"><p>Buy now</p></div>
    <pre><code class="language-python">print("hi")</code></pre>
  </article>
</main>
</body></html>"""
