"""
Tests for signed action tokens.
"""

from datetime import timedelta

import jwt
from django.test import SimpleTestCase

from apps.reservations.tokens import (
    ACTION_ACCEPT,
    ACTION_COMPLETE,
    ACTION_DECLINE,
    ActionTokenSigner,
    TokenPayload,
)

from .fakes import FrozenClock


class ActionTokenSignerTestCase(SimpleTestCase):

    def setUp(self):
        self.clock = FrozenClock()
        self.signer = ActionTokenSigner('secret-one', clock=self.clock)

    def test_issue_and_verify(self):
        token = self.signer.issue('res-1', ACTION_ACCEPT, timedelta(hours=48))
        payload = self.signer.verify(token)
        self.assertEqual(payload.id, 'res-1')
        self.assertEqual(payload.action, ACTION_ACCEPT)
        self.assertEqual(payload.expires_at, self.clock.now + timedelta(hours=48))

    def test_token_is_an_hs256_jwt(self):
        token = self.signer.issue('res-1', ACTION_ACCEPT, timedelta(hours=1))
        self.assertEqual(jwt.get_unverified_header(token)['alg'], 'HS256')
        claims = jwt.decode(token, options={'verify_signature': False})
        self.assertEqual(claims['id'], 'res-1')
        self.assertEqual(claims['action'], ACTION_ACCEPT)
        self.assertEqual(claims['exp'], int((self.clock.now + timedelta(hours=1)).timestamp()))

    def test_token_is_urlsafe(self):
        token = self.signer.issue('res-1', ACTION_ACCEPT, timedelta(hours=1))
        self.assertNotIn('=', token)
        self.assertNotIn('+', token)
        self.assertNotIn('/', token)

    def test_expired_token_is_rejected(self):
        token = self.signer.issue('res-1', ACTION_ACCEPT, timedelta(hours=48))
        self.clock.advance(hours=48, seconds=1)
        self.assertIsNone(self.signer.verify(token))

    def test_token_valid_until_its_expiry(self):
        token = self.signer.issue('res-1', ACTION_ACCEPT, timedelta(hours=48))
        self.clock.advance(hours=47, minutes=59)
        self.assertIsNotNone(self.signer.verify(token))

    def test_other_secret_rejects(self):
        token = self.signer.issue('res-1', ACTION_ACCEPT, timedelta(hours=1))
        other = ActionTokenSigner('secret-two', clock=self.clock)
        self.assertIsNone(other.verify(token))

    def test_tampered_payload_is_rejected(self):
        token = self.signer.issue('res-1', ACTION_ACCEPT, timedelta(hours=1))
        claims = jwt.decode(token, options={'verify_signature': False})
        claims['id'] = 'res-2'
        header, _, signature = token.split('.')
        forged_body = jwt.encode(claims, 'another-key', algorithm='HS256').split('.')[1]
        self.assertIsNone(self.signer.verify(f"{header}.{forged_body}.{signature}"))

    def test_unsigned_token_is_rejected(self):
        exp = int((self.clock.now + timedelta(hours=1)).timestamp())
        token = jwt.encode({'id': 'res-1', 'action': ACTION_ACCEPT, 'exp': exp}, None, algorithm='none')
        self.assertIsNone(self.signer.verify(token))

    def test_missing_claims_are_rejected(self):
        exp = int((self.clock.now + timedelta(hours=1)).timestamp())
        token = jwt.encode({'id': 'res-1', 'exp': exp}, 'secret-one', algorithm='HS256')
        self.assertIsNone(self.signer.verify(token))

    def test_garbage_is_rejected(self):
        for token in ('', None, 'not-a-token', '!!!', 'a.b.c'):
            with self.subTest(token=token):
                self.assertIsNone(self.signer.verify(token))

    def test_sign_accepts_payload_object(self):
        exp = int(self.clock.now.timestamp() * 1000) + 60_000
        token = self.signer.sign(TokenPayload(id='b-1', action=ACTION_COMPLETE, exp=exp))
        self.assertEqual(self.signer.verify(token).exp, exp)

    def test_verify_for_checks_target_and_action(self):
        token = self.signer.issue('res-1', ACTION_ACCEPT, timedelta(hours=1))
        self.assertIsNotNone(self.signer.verify_for(token, 'res-1', [ACTION_ACCEPT]))
        self.assertIsNone(self.signer.verify_for(token, 'res-2', [ACTION_ACCEPT]))
        self.assertIsNone(self.signer.verify_for(token, 'res-1', [ACTION_DECLINE]))

    def test_empty_secret_refused(self):
        with self.assertRaises(ValueError):
            ActionTokenSigner('')
