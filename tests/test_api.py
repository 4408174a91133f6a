"""HTTP-level tests: routing, status codes and error bodies."""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from api import app
from api.dependencies import (
    get_riff_manager, get_favorite_manager, get_activity_manager,
    get_stake_manager, get_user_manager, get_media, get_chain
)
from database import DatabaseError
from favorites import FavoriteExistsError
from riff_collections import CollectionNotFoundError
from riffs import RiffNotFoundError, RiffAlreadyMintedError, NotCreatorError
from staking import StakeLockedError
from storage import MediaStore, PinataClient, S3ImageStorage
from users import UserManager, UserNotFoundError
from conftest import FakeConnection, FakePool, make_user

UNLOCK_AT = datetime(2024, 6, 1, tzinfo=timezone.utc)

@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()

def override(dependency, **methods):
    manager = MagicMock()
    for name, mock in methods.items():
        setattr(manager, name, mock)
    app.dependency_overrides[dependency] = lambda: manager
    return manager

def test_missing_riff_returns_404(client):
    override(get_riff_manager, get_riff=AsyncMock(side_effect=RiffNotFoundError("Riff not found")))
    response = client.get("/api/riffs/999")
    assert response.status_code == 404
    assert response.json() == {'error': 'Riff not found'}

def test_unknown_wallet_returns_404(client):
    override(get_favorite_manager, list_favorites=AsyncMock(side_effect=UserNotFoundError("User not found")))
    response = client.get("/api/favorites/user/0xnobody")
    assert response.status_code == 404
    assert response.json() == {'error': 'User not found'}

def test_validation_errors_return_400(client):
    override(get_riff_manager, list_riffs=AsyncMock())
    response = client.get("/api/riffs/", params={'limit': 0})
    assert response.status_code == 400
    errors = response.json()['errors']
    assert errors[0]['field'] == 'limit'
    assert errors[0]['message']

def test_profile_update_rejects_bad_url(client):
    manager = override(get_user_manager, update_profile=AsyncMock())
    response = client.put("/api/users/0xabc", json={'twitterUrl': 'twitter.com/someone'})
    assert response.status_code == 400
    assert response.json()['errors'][0]['field'] == 'twitterUrl'
    manager.update_profile.assert_not_awaited()

def test_profile_update_passes_snake_case_fields(client):
    manager = override(get_user_manager, update_profile=AsyncMock(return_value={'id': 1}))
    response = client.put("/api/users/0xabc", json={'name': 'New Name', 'websiteUrl': 'https://example.com'})
    assert response.status_code == 200
    manager.update_profile.assert_awaited_once_with('0xabc', {'name': 'New Name', 'website_url': 'https://example.com'})

def test_profile_update_with_null_name_keeps_name(client):
    conn = FakeConnection()
    conn.fetchrow.return_value = make_user(user_id=1, wallet="0xabc123", name="Neon")
    app.dependency_overrides[get_user_manager] = lambda: UserManager(FakePool(conn))
    response = client.put("/api/users/0xabc123", json={'name': None})
    assert response.status_code == 200
    assert response.json()['user']['name'] == "Neon"
    assert conn.fetchrow.call_count == 1

def test_duplicate_favorite_returns_400(client):
    override(get_favorite_manager, add=AsyncMock(side_effect=FavoriteExistsError("Riff already in favorites")))
    response = client.post("/api/favorites/add", json={'riffId': 7, 'walletAddress': '0xfan'})
    assert response.status_code == 400
    assert response.json() == {'error': 'Riff already in favorites'}

def test_add_favorite_returns_201(client):
    manager = override(get_favorite_manager, add=AsyncMock(return_value={'message': 'Riff added to favorites'}))
    response = client.post("/api/riffs/7/favorite/0xfan")
    assert response.status_code == 201
    manager.add.assert_awaited_once_with(7, '0xfan')

def test_pagination_is_echoed(client):
    manager = override(get_activity_manager, get_all_activity=AsyncMock(
        return_value={'total': 0, 'activity': [], 'limit': 5, 'offset': 10}
    ))
    response = client.get("/api/activity/", params={'limit': 5, 'offset': 10})
    assert response.status_code == 200
    body = response.json()
    assert (body['limit'], body['offset']) == (5, 10)
    manager.get_all_activity.assert_awaited_once_with(limit=5, offset=10)

def test_locked_stake_reports_unlock_time(client):
    override(get_stake_manager, unstake=AsyncMock(side_effect=StakeLockedError(UNLOCK_AT)))
    response = client.post("/api/stakes/riff/7/0xstaker/unstake")
    assert response.status_code == 400
    assert response.json() == {'error': 'Stake is still locked', 'unlockAt': UNLOCK_AT.isoformat()}

def test_stake_requires_positive_amount(client):
    manager = override(get_stake_manager, stake=AsyncMock())
    response = client.post("/api/stakes/riff/7/0xstaker", json={'amount': -5})
    assert response.status_code == 400
    manager.stake.assert_not_awaited()

def test_mint_twice_returns_400(client):
    override(get_riff_manager, mint_riff=AsyncMock(side_effect=RiffAlreadyMintedError("Riff is already minted")))
    response = client.post("/api/riffs/7/mint", json={'walletAddress': '0xcreator'})
    assert response.status_code == 400
    assert response.json() == {'error': 'Riff is already minted'}

def test_unexpected_errors_return_500():
    override(get_riff_manager, get_riff=AsyncMock(side_effect=RuntimeError("boom")))
    try:
        response = TestClient(app, raise_server_exceptions=False).get("/api/riffs/1")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500
    assert response.json() == {'error': 'Internal server error'}

def test_audio_upload_rejects_images(client, tmp_path):
    media = MediaStore(
        ipfs=PinataClient(api_key='', api_secret=''),
        images=S3ImageStorage(bucket_name=''),
        upload_dir=str(tmp_path)
    )
    app.dependency_overrides[get_media] = lambda: media
    response = client.post("/api/uploads/audio", files={'audio': ('cover.png', b'png', 'image/png')})
    assert response.status_code == 400
    assert response.json() == {'error': 'Only audio files are allowed'}

def test_audio_upload(client, tmp_path):
    media = MediaStore(
        ipfs=PinataClient(api_key='', api_secret=''),
        images=S3ImageStorage(bucket_name=''),
        upload_dir=str(tmp_path)
    )
    app.dependency_overrides[get_media] = lambda: media
    response = client.post("/api/uploads/audio", files={'audio': ('riff.mp3', b'ID3', 'audio/mpeg')})
    assert response.status_code == 201
    file = response.json()['file']
    assert file['originalname'] == 'riff.mp3'
    assert file['mimetype'] == 'audio/mpeg'
    assert file['size'] == 3

def test_health(client):
    contract = MagicMock()
    contract.configured = False
    app.dependency_overrides[get_chain] = lambda: contract
    with patch('api.system.get_pool', AsyncMock(side_effect=DatabaseError("no pool"))):
        response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body['status'] == 'ok'
    assert body['message'] == 'Server is running'
    assert body['database'] == 'disconnected'
    assert body['blockchain']['status'] == 'not configured'
    assert 'memoryPercent' in body['system']

def local_media(tmp_path):
    return MediaStore(
        ipfs=PinataClient(api_key='', api_secret=''),
        images=S3ImageStorage(bucket_name=''),
        upload_dir=str(tmp_path)
    )

RIFF_FORM = {'walletAddress': '0xcreator', 'title': 'Midnight Groove'}
RIFF_FILES = {
    'audioFile': ('riff.mp3', b'ID3', 'audio/mpeg'),
    'coverImage': ('cover.png', b'png', 'image/png')
}

def stored_files(tmp_path):
    return [path for path in tmp_path.rglob('*') if path.is_file()]

def test_riff_upload_checks_collection_before_storing(client, tmp_path):
    app.dependency_overrides[get_media] = lambda: local_media(tmp_path)
    manager = override(
        get_riff_manager,
        check_upload=AsyncMock(side_effect=CollectionNotFoundError("Collection not found")),
        create_riff=AsyncMock()
    )
    response = client.post("/api/riffs/upload", data=dict(RIFF_FORM, collectionId='9'), files=RIFF_FILES)
    assert response.status_code == 404
    assert response.json() == {'error': 'Collection not found'}
    manager.check_upload.assert_awaited_once_with('0xcreator', 9)
    manager.create_riff.assert_not_awaited()
    assert stored_files(tmp_path) == []

def test_riff_upload_removes_files_when_create_fails(client, tmp_path):
    app.dependency_overrides[get_media] = lambda: local_media(tmp_path)
    override(
        get_riff_manager,
        check_upload=AsyncMock(),
        create_riff=AsyncMock(side_effect=NotCreatorError("Collection belongs to another creator"))
    )
    response = client.post("/api/riffs/upload", data=dict(RIFF_FORM, collectionId='9'), files=RIFF_FILES)
    assert response.status_code == 403
    assert stored_files(tmp_path) == []

def test_riff_upload_passes_integer_staking_terms(client, tmp_path):
    app.dependency_overrides[get_media] = lambda: local_media(tmp_path)
    manager = override(get_riff_manager, check_upload=AsyncMock(), create_riff=AsyncMock(return_value={'id': 7}))
    response = client.post(
        "/api/riffs/upload",
        data=dict(RIFF_FORM, maxPool='5000', minimumStakeAmount='250', tags='funk, bass'),
        files=RIFF_FILES
    )
    assert response.status_code == 201
    assert response.json() == {'message': 'Riff uploaded successfully', 'riff': {'id': 7}}
    args, kwargs = manager.create_riff.call_args
    assert args[1]['max_pool'] == 5000
    assert args[1]['minimum_stake_amount'] == 250
    assert kwargs['tags'] == ['funk', 'bass']
    assert kwargs['audio_file'].startswith('/uploads/audio/')
    assert kwargs['cover_image'].startswith('/uploads/images/')

def test_riff_upload_rejects_fractional_stake_amount(client, tmp_path):
    app.dependency_overrides[get_media] = lambda: local_media(tmp_path)
    manager = override(get_riff_manager, check_upload=AsyncMock(), create_riff=AsyncMock())
    response = client.post("/api/riffs/upload", data=dict(RIFF_FORM, minimumStakeAmount='100.5'), files=RIFF_FILES)
    assert response.status_code == 400
    assert response.json()['errors'][0]['field'] == 'minimumStakeAmount'
    manager.create_riff.assert_not_awaited()
