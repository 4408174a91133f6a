"""Tests for upload handling and media storage."""

import io
import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi import UploadFile
from starlette.datastructures import Headers

from storage import (
    MediaStore,
    S3ImageStorage,
    PinataClient,
    IPFSError,
    InvalidFileTypeError,
    FileTooLargeError,
    save_upload,
    validate_upload,
    unique_filename,
    AUDIO,
    IMAGES
)

def make_upload(content: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({'content-type': content_type})
    )

@pytest.fixture
def unconfigured_ipfs():
    return PinataClient(api_key='', api_secret='')

@pytest.fixture
def unconfigured_s3():
    return S3ImageStorage(bucket_name='', access_key='', secret_key='')

def test_validate_upload_mime_family():
    validate_upload(AUDIO, 'audio/mpeg', 10, 100)
    with pytest.raises(InvalidFileTypeError, match="Only audio files are allowed"):
        validate_upload(AUDIO, 'image/png', 10, 100)
    with pytest.raises(InvalidFileTypeError, match="Only image files are allowed"):
        validate_upload(IMAGES, None, 10, 100)

def test_validate_upload_size():
    with pytest.raises(FileTooLargeError):
        validate_upload(IMAGES, 'image/png', 101, 100)

def test_unique_filename_keeps_extension():
    name = unique_filename('audioFile', 'My Song.MP3')
    assert name.startswith('audioFile-')
    assert name.endswith('.mp3')
    assert unique_filename('audioFile', 'My Song.MP3') != name

@pytest.mark.asyncio
async def test_save_upload_writes_file(tmp_path):
    upload = make_upload(b'ID3data', 'riff.mp3', 'audio/mpeg')
    stored = await save_upload(upload, 'audioFile', AUDIO, upload_dir=str(tmp_path), max_size=1000)
    
    assert (tmp_path / 'audio' / stored.filename).read_bytes() == b'ID3data'
    assert stored.public_path == f"/uploads/audio/{stored.filename}"
    assert stored.describe() == {
        'filename': stored.filename,
        'originalname': 'riff.mp3',
        'mimetype': 'audio/mpeg',
        'size': 7,
        'path': stored.public_path
    }

@pytest.mark.asyncio
async def test_save_upload_rejects_wrong_type(tmp_path):
    upload = make_upload(b'png', 'cover.png', 'image/png')
    with pytest.raises(InvalidFileTypeError):
        await save_upload(upload, 'audioFile', AUDIO, upload_dir=str(tmp_path), max_size=1000)
    assert not (tmp_path / 'audio').exists()

@pytest.mark.asyncio
async def test_store_audio_without_pinata(tmp_path, unconfigured_ipfs, unconfigured_s3):
    media = MediaStore(ipfs=unconfigured_ipfs, images=unconfigured_s3, upload_dir=str(tmp_path))
    stored, cid = await media.store_audio(make_upload(b'abc', 'riff.wav', 'audio/wav'))
    assert cid == ''
    assert stored.public_path.startswith('/uploads/audio/')

@pytest.mark.asyncio
async def test_store_audio_pins_when_configured(tmp_path, unconfigured_s3):
    ipfs = MagicMock()
    ipfs.configured = True
    ipfs.pin_file = AsyncMock(return_value='bafyaudio')
    media = MediaStore(ipfs=ipfs, images=unconfigured_s3, upload_dir=str(tmp_path))
    _, cid = await media.store_audio(make_upload(b'abc', 'riff.wav', 'audio/wav'))
    assert cid == 'bafyaudio'
    ipfs.pin_file.assert_awaited_once()

@pytest.mark.asyncio
async def test_store_audio_removes_file_when_pinning_fails(tmp_path, unconfigured_s3):
    ipfs = MagicMock()
    ipfs.configured = True
    ipfs.pin_file = AsyncMock(side_effect=IPFSError("Pinata upload failed"))
    media = MediaStore(ipfs=ipfs, images=unconfigured_s3, upload_dir=str(tmp_path))
    with pytest.raises(IPFSError):
        await media.store_audio(make_upload(b'abc', 'riff.wav', 'audio/wav'))
    assert list((tmp_path / 'audio').iterdir()) == []

@pytest.mark.asyncio
async def test_store_image_uploads_to_s3(tmp_path, unconfigured_ipfs):
    client = MagicMock()
    images = S3ImageStorage(bucket_name='riff-images', region='us-east-1', client=client)
    media = MediaStore(ipfs=unconfigured_ipfs, images=images, upload_dir=str(tmp_path))
    
    stored, url, cid = await media.store_image(make_upload(b'img', 'a.png', 'image/png'), 'avatar', folder='avatars')
    
    assert url.startswith('https://riff-images.s3.us-east-1.amazonaws.com/avatars/')
    assert cid is None
    assert stored.public_path == url
    assert not any(path.is_file() for path in tmp_path.rglob('*'))
    kwargs = client.put_object.call_args.kwargs
    assert kwargs['Bucket'] == 'riff-images'
    assert kwargs['ContentType'] == 'image/png'

@pytest.mark.asyncio
async def test_discard_local_image(tmp_path, unconfigured_ipfs, unconfigured_s3):
    media = MediaStore(ipfs=unconfigured_ipfs, images=unconfigured_s3, upload_dir=str(tmp_path))
    _, url, _ = await media.store_image(make_upload(b'img', 'a.png', 'image/png'), 'avatar')
    assert url.startswith('/uploads/images/')
    
    await media.discard_image(url)
    assert not (tmp_path / url[len('/uploads/'):]).exists()

@pytest.mark.asyncio
async def test_discard_ignores_paths_outside_upload_dir(tmp_path, unconfigured_ipfs, unconfigured_s3):
    outside = tmp_path / 'secret.txt'
    outside.write_text('keep')
    media = MediaStore(ipfs=unconfigured_ipfs, images=unconfigured_s3, upload_dir=str(tmp_path / 'uploads'))
    await media.discard_image('/uploads/../secret.txt')
    assert outside.exists()

@pytest.mark.asyncio
async def test_delete_skips_placeholder_images():
    client = MagicMock()
    images = S3ImageStorage(bucket_name='riff-images', region='us-east-1', client=client)
    assert await images.delete_image('/neon-profile.png') is False
    assert await images.delete_image('https://example.com/a.png') is False
    assert await images.delete_image('https://riff-images.s3.us-east-1.amazonaws.com/avatars/1-a.png') is True
    client.delete_object.assert_called_once_with(Bucket='riff-images', Key='avatars/1-a.png')

@pytest.mark.asyncio
async def test_signed_upload_url():
    client = MagicMock()
    client.generate_presigned_url.return_value = 'https://signed.example/put'
    images = S3ImageStorage(bucket_name='riff-images', region='us-east-1', client=client)
    assert await images.get_signed_url('avatars/a.png', expires_in=60) == 'https://signed.example/put'
    client.generate_presigned_url.assert_called_once_with(
        ClientMethod='put_object',
        Params={'Bucket': 'riff-images', 'Key': 'avatars/a.png'},
        ExpiresIn=60
    )

@pytest.mark.asyncio
async def test_pinata_pin_json():
    ipfs = PinataClient(api_key='key', api_secret='secret', api_url='https://pinata.test',
                        gateway_url='https://gw.test/ipfs/')
    ipfs.session = MagicMock()
    ipfs.session.post.return_value.json.return_value = {'IpfsHash': 'bafyjson'}
    
    cid = await ipfs.pin_json({'name': 'Groove'}, 'riff-7-metadata')
    
    assert cid == 'bafyjson'
    assert ipfs.gateway_url(cid) == 'https://gw.test/ipfs/bafyjson'
    url = ipfs.session.post.call_args.args[0]
    body = ipfs.session.post.call_args.kwargs['json']
    assert url == 'https://pinata.test/pinning/pinJSONToIPFS'
    assert body['pinataContent'] == {'name': 'Groove'}
    assert body['pinataMetadata'] == {'name': 'riff-7-metadata'}
