"""Visit a page twice with the response cache enabled."""

import asyncio
import sys
import time

from dotenv import load_dotenv

from headless import ConnectionOptions, Page, ResponseCache, connect, launch_browser, BrowserOptions

# Load HEADLESS_* variables from .env
load_dotenv()


async def visit_twice(url: str):
    """Second visit should be answered from the cache."""
    options = ConnectionOptions.from_env(verbose=2)

    async with launch_browser(BrowserOptions(port=options.port)):
        async with await connect(options) as connection:
            await ResponseCache(connection).enable()
            page = Page(connection)

            for attempt in (1, 2):
                start_time = time.time()
                await page.visit(url)
                title = await page.select_one("title")
                text = await page.text(title) if title else None
                print(f"{attempt}. {text!r} in {time.time() - start_time:.2f}s")


if __name__ == "__main__":
    asyncio.run(visit_twice(sys.argv[1] if len(sys.argv) > 1 else "https://example.com/"))
