"""
ePack Export — Infinite-Scroll Loader (collection mode)

The collection page materialises groups as it is scrolled. Each pass keeps
scrolling to the bottom until the "<group count>:<scrollHeight>" signature
stays unchanged for `idle_limit` consecutive polls. Passes repeat until one
adds nothing or `max_passes` is reached.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from epack_export.config import settings

logger = structlog.get_logger(__name__)

# Picks the element that actually scrolls: the document, else a known content pane
_FIND_SCROLLER_JS = """
() => {
  const scrollable = (el) => {
    if (!el) return false;
    const st = getComputedStyle(el);
    return /(auto|scroll)/.test(st.overflowY) && el.scrollHeight > el.clientHeight + 20;
  };
  const docEl = document.scrollingElement || document.documentElement;
  if (scrollable(docEl)) return docEl;
  const candidate = document.querySelector(".content, .main, #root");
  return candidate && scrollable(candidate) ? candidate : docEl;
}
"""

_SIGNATURE_JS = """
([scroller, selector]) => `${document.querySelectorAll(selector).length}:${scroller.scrollHeight}`
"""

_SCROLL_STEP_JS = """
([scroller, step]) => {
  scroller.scrollTo({ top: Math.floor(scroller.scrollHeight * step), behavior: "instant" });
  scroller.scrollTop = scroller.scrollHeight;
}
"""

_SCROLL_BACK_JS = """
(scroller) => { scroller.scrollTop = Math.max(0, scroller.scrollTop - scroller.clientHeight); }
"""

_SCROLL_BOTTOM_JS = "(scroller) => { scroller.scrollTop = scroller.scrollHeight; }"


async def load_all_by_infinite_scroll(
    page: Any,
    group_selector: str | None = None,
    wait_ms: int | None = None,
    idle_limit: int | None = None,
    max_passes: int | None = None,
    scroll_step: float | None = None,
) -> int:
    """
    Scroll a Playwright page until no more groups load.

    Args:
        page: Playwright Page object.
        group_selector: Selector whose match count is part of the signature.
        wait_ms / idle_limit / max_passes / scroll_step: Override settings.

    Returns:
        Number of passes performed.
    """
    selector = group_selector or settings.GROUP_SELECTOR
    wait = (wait_ms if wait_ms is not None else settings.SCROLL_WAIT_MS) / 1000
    idle_max = idle_limit if idle_limit is not None else settings.SCROLL_IDLE_LIMIT
    passes_max = max_passes if max_passes is not None else settings.SCROLL_MAX_PASSES
    step = scroll_step if scroll_step is not None else settings.SCROLL_STEP

    scroller = await page.evaluate_handle(_FIND_SCROLLER_JS)
    previous_pass = ""
    passes = 0

    for pass_number in range(1, passes_max + 1):
        passes = pass_number
        logger.info("scroll_pass_started", pass_number=pass_number, max_passes=passes_max)

        idle, last = 0, ""
        while True:
            await page.evaluate(_SCROLL_STEP_JS, [scroller, step])
            await asyncio.sleep(wait)
            now = await page.evaluate(_SIGNATURE_JS, [scroller, selector])
            if now == last:
                idle += 1
                if idle >= idle_max:
                    break
            else:
                idle, last = 0, now

        signature = await page.evaluate(_SIGNATURE_JS, [scroller, selector])
        logger.debug("scroll_pass_finished", pass_number=pass_number, signature=signature)
        if signature == previous_pass:
            break
        previous_pass = signature
        await page.evaluate(_SCROLL_BACK_JS, scroller)
        await asyncio.sleep(wait)

    await page.evaluate(_SCROLL_BOTTOM_JS, scroller)
    await asyncio.sleep(wait * 2)
    logger.info("scroll_load_complete", passes=passes, signature=previous_pass)
    return passes
