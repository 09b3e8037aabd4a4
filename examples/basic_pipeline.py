"""Forward $pageview events to a Salesforce Apex REST endpoint.

Set SF_HOST, SF_USERNAME, SF_PASSWORD, SF_CONSUMER_KEY and SF_CONSUMER_SECRET
before running.
"""

import asyncio
import logging
import os

from sfrelay.core import SalesforcePipeline

logging.basicConfig(level=logging.INFO)


async def main() -> None:
    pipeline = await SalesforcePipeline.init(
        {
            "salesforceHost": os.environ["SF_HOST"],
            "username": os.environ["SF_USERNAME"],
            "password": os.environ["SF_PASSWORD"],
            "consumerKey": os.environ["SF_CONSUMER_KEY"],
            "consumerSecret": os.environ["SF_CONSUMER_SECRET"],
            "eventsToInclude": "$pageview",
            "eventPath": "services/apexrest/posthog/events",
            "eventMethodType": "POST",
            "propertiesToInclude": "$current_url, $browser",
            "debugLogging": "on",
        }
    )
    try:
        for i in range(3):
            await pipeline.on_event(
                {
                    "event": "$pageview",
                    "distinct_id": f"user-{i}",
                    "properties": {"$current_url": "https://example.com", "$browser": "Firefox"},
                }
            )
    finally:
        await pipeline.teardown()
    print(pipeline.metrics.to_dict())


if __name__ == "__main__":
    asyncio.run(main())
