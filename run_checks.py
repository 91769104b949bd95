from fastapi.testclient import TestClient
from app.main import app
from app.models.user import UserRole
from app.utils.security import make_identity_token

client = TestClient(app)

print('ROOT:')
print(client.get('/').json())

print('\nHEALTH:')
print(client.get('/health').json())

print('\nDB HEALTH:')
try:
    resp = client.get('/health/db')
    print(resp.status_code)
    try:
        print(resp.json())
    except Exception:
        print(resp.text)
except Exception as e:
    print('DB call raised exception:', e)

print('\nISSUES (as admin):')
token = make_identity_token('admin@test.com', UserRole.ADMIN, name='Admin User')
try:
    resp = client.get('/issues', headers={'Authorization': f'Bearer {token}'})
    print(resp.status_code)
    print(resp.json())
except Exception as e:
    print('Issue listing raised exception:', e)
