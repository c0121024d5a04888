"""Request signing for the admin API.

The admin API accepts S3 style SigV4 signatures. Signing is delegated to
botocore; this module only adapts it to requests' auth hook.
"""

import logging

from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from requests.auth import AuthBase

from ..config import DEFAULT_ADMIN_REGION

logger = logging.getLogger(__name__)


class AdminSigV4Auth(AuthBase):
    """requests auth hook that signs each request with access/secret keys"""

    service = 's3'

    def __init__(self, access_key: str, secret_key: str, region: str = DEFAULT_ADMIN_REGION):
        self.credentials = Credentials(access_key, secret_key)
        self.region = region

    def __call__(self, request):
        aws_request = AWSRequest(method=request.method, url=request.url, data=request.body or b'')
        S3SigV4Auth(self.credentials, self.service, self.region).add_auth(aws_request)
        for name, value in aws_request.headers.items():
            request.headers[name] = value
        logger.debug(f"Signed {request.method} {request.url}")
        return request
