import asyncio
import os

from athena_express import AthenaExpress, AthenaHttpService

# Requests must be signed with AWS SigV4. Either pass an httpx.Auth that signs
# them, or point ATHENA_ENDPOINT_URL at a signing proxy such as aws-sigv4-proxy.


async def main():
    async with AthenaHttpService(
        region=os.getenv("AWS_REGION", "us-east-1"),
        endpoint_url=os.getenv("ATHENA_ENDPOINT_URL"),
    ) as service:
        client = AthenaExpress(
            service,
            staging_location=os.getenv("ATHENA_STAGING_LOCATION"),
            database=os.getenv("ATHENA_DATABASE", "default"),
            get_stats=True,
        )

        response = await client.query("SELECT * FROM elb_logs LIMIT 3")

        for item in response.items:
            print(item)
        print(response.to_dict())


asyncio.run(main())
