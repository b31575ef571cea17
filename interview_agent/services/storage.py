import os
import re
import time

from flask import current_app
import boto3
from botocore.client import Config

_UNSAFE_FILENAME = re.compile(r"[^a-zA-Z0-9._-]")


def _ensure_local_dir():
    d = current_app.config['LOCAL_STORAGE_DIR']
    os.makedirs(d, exist_ok=True)
    return d


def _s3_client():
    # build boto3 client kwargs flexibly: endpoint_url may be empty in AWS-managed S3
    s3_kwargs = {}
    endpoint = current_app.config.get('S3_ENDPOINT')
    if endpoint:
        s3_kwargs['endpoint_url'] = endpoint
    region = current_app.config.get('S3_REGION')
    if region:
        s3_kwargs['region_name'] = region
    return boto3.client(
        's3',
        aws_access_key_id=current_app.config.get('S3_ACCESS_KEY'),
        aws_secret_access_key=current_app.config.get('S3_SECRET_KEY'),
        config=Config(signature_version='s3v4'),
        **s3_kwargs,
    )


def _public_url(key):
    base = current_app.config.get('S3_PUBLIC_URL')
    return f"{base.rstrip('/')}/{key}" if base else None


def put_bytes(key, data, content_type, metadata=None):
    """Store ``data`` under ``key`` and return ``{key, url, public_url}``.

    ``url`` is the internal reference (``s3://`` or ``file://``) that
    ``download_bytes`` understands. ``public_url`` is only set when the
    bucket is exposed through ``S3_PUBLIC_URL``.
    """
    backend = current_app.config.get('STORAGE_BACKEND', 'local')
    if backend == 's3':
        bucket = current_app.config.get('S3_BUCKET')
        _s3_client().put_object(
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            Metadata={k: str(v) for k, v in (metadata or {}).items()},
        )
        current_app.logger.info('Uploaded %s bytes to s3://%s/%s', len(data), bucket, key)
        return {'key': key, 'url': f"s3://{bucket}/{key}", 'public_url': _public_url(key)}

    d = _ensure_local_dir()
    path = os.path.join(d, key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(data)
    return {'key': key, 'url': f"file://{os.path.abspath(path)}", 'public_url': None}


def upload_recording(interview_id, data, mime_type='video/webm'):
    ts = int(time.time() * 1000)
    key = f"recordings/{interview_id}/{ts}.webm"
    result = put_bytes(key, data, mime_type, {'interviewId': interview_id, 'uploadedAt': ts})
    result['file_size'] = len(data)
    return result


def upload_document(filename, data, content_type):
    ts = int(time.time() * 1000)
    key = f"documents/{ts}_{_UNSAFE_FILENAME.sub('_', filename)}"
    result = put_bytes(key, data, content_type, {'originalFilename': filename, 'uploadedAt': ts})
    result['file_size'] = len(data)
    return result


def _s3_location(url):
    bucket, _, key = url[len('s3://'):].partition('/')
    return bucket, key


def signed_download_url(url, expires_in=3600):
    """Presigned GET for ``s3://`` references; other references are returned as is."""
    if not url.startswith('s3://'):
        return url
    bucket, key = _s3_location(url)
    return _s3_client().generate_presigned_url(
        'get_object', Params={'Bucket': bucket, 'Key': key}, ExpiresIn=expires_in)


def download_bytes(url: str) -> bytes:
    """Read back an object stored by ``put_bytes``."""
    if url.startswith('s3://'):
        bucket, key = _s3_location(url)
        return _s3_client().get_object(Bucket=bucket, Key=key)['Body'].read()
    if url.startswith('file://'):
        with open(url[len('file://'):], 'rb') as f:
            return f.read()
    raise ValueError(f"Unsupported storage URL: {url}")
