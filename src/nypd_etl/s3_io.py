from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import boto3

S3_SCHEME = "s3://"


@dataclass
class S3Path:
    bucket: str
    key: str


def is_s3_uri(destination: str) -> bool:
    return destination.startswith(S3_SCHEME)


def parse_s3_uri(uri: str) -> S3Path:
    if not is_s3_uri(uri):
        raise ValueError(f"not an s3 uri: {uri}")
    bucket, _, key = uri[len(S3_SCHEME):].partition("/")
    if not bucket or not key:
        raise ValueError(f"s3 uri needs a bucket and a key: {uri}")
    return S3Path(bucket=bucket, key=key)


class S3IO:
    def __init__(self, bucket: str, region: str) -> None:
        self.bucket = bucket
        self.region = region
        self._client = boto3.client("s3", region_name=region)

    def put_bytes(self, key: str, body: bytes) -> None:
        self._client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType="application/json")

    def put_json(self, key: str, payload: Any) -> None:
        body = json.dumps(payload, indent=2, default=str).encode("utf-8")
        self.put_bytes(key, body)
