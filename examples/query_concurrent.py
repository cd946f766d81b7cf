import asyncio
import os

from athena_express import AthenaExpress, AthenaHttpService

# Each query runs its own lifecycle, so independent queries can share one client.


async def main():
    async with AthenaHttpService(
        region=os.getenv("AWS_REGION", "us-east-1"),
        endpoint_url=os.getenv("ATHENA_ENDPOINT_URL"),
    ) as service:
        client = AthenaExpress(
            service,
            staging_location=os.getenv("ATHENA_STAGING_LOCATION"),
            format_as_records=True,
        )

        responses = await asyncio.gather(
            client.query("SELECT count(*) AS n FROM elb_logs"),
            client.query({"sql": "SELECT count(*) AS n FROM orders", "db": "sales"}),
        )

        for response in responses:
            print(response.to_pandas())


asyncio.run(main())
