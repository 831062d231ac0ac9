from marketplace.extensions import db
from marketplace.models import Product


def _create(client, user, image_file, images=(), **fields):
    data = {'name': 'Desk Lamp', 'price': '24.50', 'stock': '4',
            'category': 'Home', 'description': 'Warm light'}
    data.update(fields)
    data['images'] = [image_file(name) for name in images]
    return client.post('/api/products', data=data, headers=user.headers,
                       content_type='multipart/form-data')


def test_seller_creates_product_with_images(client, seller, image_file,
                                            assets):
    resp = _create(client, seller, image_file, images=('a.png', 'b.png'))

    assert resp.status_code == 201
    body = resp.get_json()
    assert body['name'] == 'Desk Lamp'
    assert body['price'] == 24.5
    assert body['stock'] == 4
    assert body['seller']['_id'] == seller.id
    assert body['ratings'] == 0
    assert body['numOfReviews'] == 0
    assert [img['public_id'] for img in body['images']] == [
        'products/1-a.png', 'products/2-b.png']
    assert assets.uploaded == ['products/1-a.png', 'products/2-b.png']


def test_buyer_cannot_create_product(client, buyer, image_file):
    resp = _create(client, buyer, image_file)

    assert resp.status_code == 403


def test_create_product_validates_fields(client, seller, image_file):
    assert _create(client, seller, image_file,
                   price='cheap').status_code == 400
    assert _create(client, seller, image_file, name='').status_code == 400
    assert _create(client, seller, image_file,
                   stock='-2').status_code == 400


def test_too_many_images(client, seller, image_file, assets):
    names = [f'{i}.png' for i in range(6)]

    resp = _create(client, seller, image_file, images=names)

    assert resp.status_code == 400
    assert assets.uploaded == []


def test_failed_upload_is_bad_gateway(client, seller, image_file, assets):
    assets.fail_upload = True

    resp = _create(client, seller, image_file, images=('a.png',))

    assert resp.status_code == 502


def test_product_list_paginates(client, seller, make_product):
    for i in range(13):
        make_product(seller, name=f'Item {i:02d}')

    first = client.get('/api/products').get_json()
    second = client.get('/api/products?pageNumber=2').get_json()

    assert len(first['products']) == 12
    assert first['page'] == 1
    assert first['pages'] == 2
    assert [p['name'] for p in second['products']] == ['Item 12']
    assert second['page'] == 2


def test_product_list_filters(client, seller, make_product):
    make_product(seller, name='Red Chair', category='Furniture')
    make_product(seller, name='Blue Chair', category='Furniture')
    make_product(seller, name='Red Mug', category='Kitchen')

    by_keyword = client.get('/api/products?keyword=red').get_json()
    by_category = client.get(
        '/api/products?category=Furniture').get_json()
    both = client.get(
        '/api/products?keyword=red&category=Furniture').get_json()

    assert {p['name'] for p in by_keyword['products']} == {
        'Red Chair', 'Red Mug'}
    assert {p['name'] for p in by_category['products']} == {
        'Red Chair', 'Blue Chair'}
    assert [p['name'] for p in both['products']] == ['Red Chair']


def test_empty_catalog(client):
    body = client.get('/api/products').get_json()

    assert body == {'products': [], 'page': 1, 'pages': 0}


def test_product_detail(client, seller, make_product):
    product_id = make_product(seller, name='Globe')

    resp = client.get(f'/api/products/{product_id}')

    assert resp.status_code == 200
    assert resp.get_json()['name'] == 'Globe'
    assert resp.get_json()['reviews'] == []
    assert client.get('/api/products/9999').status_code == 404


def test_update_only_touches_given_fields(client, seller, make_product):
    product_id = make_product(seller, name='Clock', price='15.00', stock=3)

    resp = client.put(f'/api/products/{product_id}', json={'stock': 0},
                      headers=seller.headers)

    body = resp.get_json()
    assert resp.status_code == 200
    assert body['stock'] == 0
    assert body['name'] == 'Clock'
    assert body['price'] == 15.0


def test_update_replaces_images(client, seller, image_file, assets):
    product_id = _create(client, seller, image_file,
                         images=('old.png',)).get_json()['_id']

    resp = client.put(
        f'/api/products/{product_id}',
        data={'images': [image_file('new.png')]},
        headers=seller.headers,
        content_type='multipart/form-data',
    )

    body = resp.get_json()
    assert [img['public_id'] for img in body['images']] == [
        'products/2-new.png']
    assert assets.deleted == ['products/1-old.png']


def test_only_owner_or_admin_updates(client, seller, other_seller, admin,
                                     make_product):
    product_id = make_product(seller)
    url = f'/api/products/{product_id}'

    assert client.put(url, json={'name': 'Hijack'},
                      headers=other_seller.headers).status_code == 403
    resp = client.put(url, json={'name': 'Moderated'}, headers=admin.headers)
    assert resp.status_code == 200
    assert resp.get_json()['name'] == 'Moderated'


def test_delete_product_removes_images(client, app, seller, image_file,
                                       assets):
    product_id = _create(client, seller, image_file,
                         images=('a.png',)).get_json()['_id']

    resp = client.delete(f'/api/products/{product_id}',
                         headers=seller.headers)

    assert resp.status_code == 200
    assert resp.get_json() == {'message': 'Product removed'}
    assert assets.deleted == ['products/1-a.png']
    with app.app_context():
        assert db.session.get(Product, product_id) is None


def test_delete_survives_asset_failure(client, seller, image_file, assets):
    product_id = _create(client, seller, image_file,
                         images=('a.png',)).get_json()['_id']
    assets.fail_delete = True

    resp = client.delete(f'/api/products/{product_id}',
                         headers=seller.headers)

    assert resp.status_code == 200
    assert client.get(f'/api/products/{product_id}').status_code == 404


def test_other_seller_cannot_delete(client, seller, other_seller,
                                    make_product):
    product_id = make_product(seller)

    resp = client.delete(f'/api/products/{product_id}',
                         headers=other_seller.headers)

    assert resp.status_code == 403


def test_reviews_update_average(client, seller, buyer, stranger,
                                make_product):
    product_id = make_product(seller)
    url = f'/api/products/{product_id}/reviews'

    first = client.post(url, json={'rating': 5, 'comment': 'Great'},
                        headers=buyer.headers)
    second = client.post(url, json={'rating': 2}, headers=stranger.headers)

    assert first.status_code == 201
    assert first.get_json() == {'message': 'Review added'}
    assert second.status_code == 201
    body = client.get(f'/api/products/{product_id}').get_json()
    assert body['numOfReviews'] == 2
    assert body['ratings'] == 3.5
    assert {r['name'] for r in body['reviews']} == {buyer.name,
                                                    stranger.name}


def test_review_only_once(client, seller, buyer, make_product):
    product_id = make_product(seller)
    url = f'/api/products/{product_id}/reviews'
    client.post(url, json={'rating': 4}, headers=buyer.headers)

    resp = client.post(url, json={'rating': 1}, headers=buyer.headers)

    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Product already reviewed'}
    body = client.get(f'/api/products/{product_id}').get_json()
    assert body['numOfReviews'] == 1
    assert body['ratings'] == 4


def test_review_rating_range(client, seller, buyer, make_product):
    product_id = make_product(seller)
    url = f'/api/products/{product_id}/reviews'

    for rating in (0, 6, 'five', None, 4.9, True):
        resp = client.post(url, json={'rating': rating},
                           headers=buyer.headers)
        assert resp.status_code == 400


def test_top_products(app, client, seller, make_product):
    ids = [make_product(seller, name=f'P{i}') for i in range(4)]
    with app.app_context():
        for product_id, rating in zip(ids, (2.0, 4.5, 3.0, 5.0)):
            db.session.get(Product, product_id).rating = rating
        db.session.commit()

    body = client.get('/api/products/top').get_json()

    assert [p['name'] for p in body] == ['P3', 'P1', 'P2']


def test_seller_products(client, seller, other_seller, make_product):
    make_product(seller, name='Ours')
    make_product(other_seller, name='Theirs')

    body = client.get(f'/api/products/seller/{seller.id}').get_json()

    assert [p['name'] for p in body] == ['Ours']


def test_keyword_matches_wildcards_literally(client, seller, make_product):
    make_product(seller, name='Plain Mug')
    make_product(seller, name='50% Off Mug')
    make_product(seller, name='Tea_Cup')

    percent = client.get('/api/products?keyword=%25').get_json()
    underscore = client.get('/api/products?keyword=_').get_json()

    assert [p['name'] for p in percent['products']] == ['50% Off Mug']
    assert [p['name'] for p in underscore['products']] == ['Tea_Cup']
