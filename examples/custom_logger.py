import asyncio
import os
import logging

from athena_express import AthenaExpress, AthenaHttpService, QueryTimeoutError


logger = logging.getLogger("athena_express")
logger.setLevel(logging.DEBUG)
fh = logging.FileHandler("athenaexpress.log")
fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(process)d %(name)s %(message)s"))
fh.setLevel(logging.DEBUG)
logger.addHandler(fh)


async def main():
    async with AthenaHttpService(
        region=os.getenv("AWS_REGION", "us-east-1"),
        endpoint_url=os.getenv("ATHENA_ENDPOINT_URL"),
    ) as service:
        client = AthenaExpress(
            service,
            {
                "s3": os.getenv("ATHENA_STAGING_LOCATION"),
                "db": "default",
                "retry": 500,
                "timeout": 60000,
            },
        )

        try:
            response = await client.query({"sql": "SELECT count(*) AS n FROM elb_logs"})
            print(response.items)
        except QueryTimeoutError as e:
            print(f"error: {e.message_with_context()}")


asyncio.run(main())
