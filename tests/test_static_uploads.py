import pytest


@pytest.fixture
def app_config(app_config, tmp_path):
    class ServedConfig(app_config):
        STATIC_FOLDER = str(tmp_path)
        UPLOAD_FOLDER = str(tmp_path / 'uploads')
    return ServedConfig


@pytest.fixture
def assets():
    # Let create_app build the real local store from the config.
    return None


def test_uploaded_product_image_is_served(client, seller, image_file):
    resp = client.post('/api/products', data={
        'name': 'Vase',
        'price': '30',
        'images': [image_file('vase.png')],
    }, headers=seller.headers, content_type='multipart/form-data')

    assert resp.status_code == 201
    url = resp.get_json()['images'][0]['url']
    assert url.startswith('/static/uploads/products/')

    served = client.get(url)
    assert served.status_code == 200
    assert served.data == b'\x89PNG fake image bytes'
    served.close()


def test_uploaded_avatar_is_served(client, buyer, image_file, tmp_path):
    resp = client.put('/api/users/avatar',
                      data={'avatar': image_file('me.png')},
                      headers=buyer.headers,
                      content_type='multipart/form-data')

    avatar = resp.get_json()['avatar']
    assert (tmp_path / 'uploads' / avatar['public_id']).exists()
    served = client.get(avatar['url'])
    assert served.status_code == 200
    served.close()
