import logging
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from botocore.config import Config
from retry import retry

RETRIES_NUMBER = 3
REGION = 'us-east-1'

# Long polling holds the connection for up to 20s, leave room on top of it
SQS_READ_TIMEOUT = 30


class AWSWrapper:
    """
    Wrapper class for AWS session and client creation with retry capabilities
    """

    def __init__(self, sso_profile_name: str = None, region_name: str = REGION):
        self._region_name = region_name
        self._session = self._create_boto_session(sso_profile_name)

    @retry(exceptions=(ClientError, BotoCoreError), tries=RETRIES_NUMBER, delay=3)
    def _create_boto_session(self, sso_profile_name: str = None):
        logging.debug("Creating boto3 session via " + ("SSO profile name" if sso_profile_name else "default credentials"))
        if sso_profile_name:
            return boto3.session.Session(profile_name=sso_profile_name, region_name=self._region_name)
        return boto3.session.Session(region_name=self._region_name)

    @retry(exceptions=(ClientError, BotoCoreError), tries=RETRIES_NUMBER, delay=3)
    def create_aws_client(self, service_name: str, region_name: str = None, config=None):
        """
        Create a boto3 client with retry capability.

        Args:
            service_name: AWS service name ('sqs', ...)
            region_name: Optional AWS region override
            config: Optional botocore configuration

        Returns:
            Boto3 client for the requested service
        """
        logging.debug(f'creating aws client for: {service_name}')

        # One outstanding request at a time, so a tiny pool is enough
        default_config = Config(
            max_pool_connections=2,
            read_timeout=SQS_READ_TIMEOUT
        )
        return self._session.client(service_name=service_name, region_name=region_name or self._region_name,
                                    config=config or default_config)
