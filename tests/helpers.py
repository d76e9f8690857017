import copy
import logging
import os
import pickle
import random
import unittest
from unittest import mock

from pyspseq import (
    DeserializationError,
    InvalidParameter,
    InvalidRepresentative,
    InvalidSignature,
    PublicKey,
    RandomnessError,
    Representative,
    Signature,
    SigningKey,
    SystemParameters,
    change_representative,
    change_representative_with,
    is_valid,
    load_library,
    pairing_group,
    randomize,
    sign,
    verify,
)
from pyspseq.schemes import fhs19

logging.getLogger("pyspseq").setLevel(logging.CRITICAL)

SEED = 20240601


class FailingRandom:
    def randrange(self, start, stop):
        raise OSError("entropy source unavailable")


class ZeroRandom:
    def randrange(self, start, stop):
        return 0


class FlakyRandom:
    """Works for the first `n` draws, then fails"""

    def __init__(self, n):
        self.n = n
        self.rng = random.Random(SEED)

    def randrange(self, start, stop):
        if self.n == 0:
            raise OSError("entropy source exhausted")
        self.n -= 1
        return self.rng.randrange(start, stop)


def flip_bit(data, index, bit=0):
    data = bytearray(data)
    data[index] ^= 1 << bit
    return bytes(data)


def make_group(backend):
    if backend is None:
        raise ValueError("Missing backend")
    if backend == "mcl":
        try:
            load_library()
        except RuntimeError as e:
            raise unittest.SkipTest(f"mcl not available: {e}")
    if isinstance(backend, str):
        return pairing_group(backend)
    return backend()


class SetUpMixin:
    backend = None
    class_length = 2

    def setUp(self):
        self.group = make_group(self.backend)
        self.params = SystemParameters.generate(self.class_length, self.group)
        self.rng = random.Random(SEED)
        self.sk = SigningKey.generate(self.params, self.rng)
        self.pk = self.sk.public_key()
        self.message = Representative.random(self.params, self.rng)
        self.signature = self.sk.sign(self.message, self.rng)

    def tearDown(self):
        self.sk.zeroize()

    def otherParams(self, class_length):
        return SystemParameters.generate(class_length, self.group)


class TestParameters(SetUpMixin):
    def test_1a_invalidClassLength(self):
        for value in (0, -1, True, "2", 2.0, None):
            with self.subTest(value=value):
                with self.assertRaises(InvalidParameter):
                    SystemParameters.generate(value, self.group)

    def test_1b_generators(self):
        self.assertEqual(self.params.class_length, self.class_length)
        self.assertFalse(self.params.P.is_zero())
        self.assertFalse(self.params.P_hat.is_zero())
        self.assertEqual(self.params.P, self.group.g1())
        self.assertEqual(self.params.P_hat, self.group.g2())

    def test_1c_immutable(self):
        with self.assertRaises(AttributeError):
            self.params.class_length = 5
        with self.assertRaises(AttributeError):
            self.pk.elements = ()
        with self.assertRaises(AttributeError):
            self.message.elements = ()
        with self.assertRaises(AttributeError):
            self.signature.Z = self.signature.Y

    def test_1d_equality(self):
        self.assertEqual(self.params, self.otherParams(self.class_length))
        self.assertNotEqual(self.params, self.otherParams(self.class_length + 1))


class TestKeys(SetUpMixin):
    def test_2a_generate(self):
        scalars = self.sk.scalars()
        self.assertEqual(len(scalars), self.class_length)
        self.assertEqual(len(self.sk), self.class_length)
        for x in scalars:
            self.assertTrue(0 < x < self.group.order)

    def test_2b_publicKeyDerivation(self):
        self.assertEqual(len(self.pk), self.class_length)
        for x, x_hat in zip(self.sk.scalars(), self.pk):
            self.assertEqual(x_hat, self.params.P_hat * x)
        self.assertEqual(PublicKey.derive(self.sk), self.pk)

    def test_2c_fromScalars(self):
        sk = SigningKey.from_scalars(self.params, self.sk.scalars())
        self.assertEqual(sk.public_key(), self.pk)
        bad = [
            [1] * (self.class_length + 1),
            [0] + [1] * (self.class_length - 1),
            [self.group.order] + [1] * (self.class_length - 1),
            [True] + [1] * (self.class_length - 1),
        ]
        for scalars in bad:
            with self.subTest(scalars=len(scalars)):
                with self.assertRaises(InvalidParameter):
                    SigningKey.from_scalars(self.params, scalars)

    def test_2d_contextManagerErases(self):
        with SigningKey.generate(self.params, self.rng) as sk:
            sk.sign(self.message, self.rng)
            self.assertFalse(sk.erased)
        self.assertTrue(sk.erased)
        with self.assertRaises(InvalidParameter):
            sk.scalars()
        with self.assertRaises(InvalidParameter):
            sk.sign(self.message, self.rng)
        with self.assertRaises(InvalidParameter):
            sk.public_key()

    def test_2e_erasedOnError(self):
        with self.assertRaises(ValueError):
            with SigningKey.generate(self.params, self.rng) as sk:
                raise ValueError("boom")
        self.assertTrue(sk.erased)

    def test_2f_reprHidesScalars(self):
        rep = repr(self.sk)
        for x in self.sk.scalars():
            self.assertNotIn(str(x), rep)
            self.assertNotIn(format(x, "x"), rep)

    def test_2g_notCopyable(self):
        with self.assertRaises(TypeError):
            copy.copy(self.sk)
        with self.assertRaises(TypeError):
            copy.deepcopy(self.sk)
        with self.assertRaises(TypeError):
            pickle.dumps(self.sk)

    def test_2h_randomnessFailure(self):
        with self.assertRaises(RandomnessError):
            SigningKey.generate(self.params, FailingRandom())
        with self.assertRaises(RandomnessError):
            SigningKey.generate(self.params, ZeroRandom())
        with mock.patch.object(fhs19, "_wipe", wraps=fhs19._wipe) as wipe:
            with self.assertRaises(RandomnessError):
                SigningKey.generate(
                    self.params, FlakyRandom(self.class_length - 1)
                )
        wipe.assert_called_once()
        self.assertEqual(wipe.call_args.args[0], [])

    def test_2i_keyBytes(self):
        data = self.sk.to_bytes()
        self.assertEqual(len(data), 32 * self.class_length)
        sk = SigningKey.from_bytes(self.params, data)
        self.assertEqual(sk.scalars(), self.sk.scalars())
        with self.assertRaises(DeserializationError):
            SigningKey.from_bytes(self.params, data[:-1])
        with self.assertRaises(DeserializationError):
            SigningKey.from_bytes(self.params, bytes(len(data)))
        with self.assertRaises(DeserializationError):
            SigningKey.from_bytes(self.params, b"\xff" * len(data))

    def test_2j_constructorChecks(self):
        for scalars in (
            [0] * self.class_length,
            [5] * (self.class_length + 1),
            [5] * (self.class_length - 1),
            [-5] * self.class_length,
        ):
            with self.subTest(scalars=scalars):
                with self.assertRaises(InvalidParameter):
                    SigningKey(self.params, scalars)
        scalars = [self.group.order] * self.class_length
        with self.assertRaises(InvalidParameter):
            SigningKey(self.params, scalars)
        # rejected secrets are wiped
        self.assertEqual(scalars, [])
        sk = SigningKey(self.params, tuple(self.sk.scalars()))
        self.assertEqual(sk.public_key(), self.pk)


class TestSign(SetUpMixin):
    def test_3a_validSignature(self):
        verify(self.pk, self.message, self.signature)
        self.assertTrue(is_valid(self.pk, self.message, self.signature))
        self.assertTrue(self.pk.is_valid(self.message, self.signature))

    def test_3b_identityRejected(self):
        zero = self.params.P * 0
        elements = list(self.message)
        elements[-1] = zero
        with self.assertRaises(InvalidRepresentative):
            Representative(self.params, elements)
        with self.assertRaises(InvalidRepresentative):
            sign(self.sk, elements, self.rng)
        with self.assertRaises(InvalidRepresentative):
            verify(self.pk, elements, self.signature)

    def test_3c_lengthMismatch(self):
        elements = list(self.message) + [self.params.P]
        with self.assertRaises(InvalidRepresentative):
            sign(self.sk, elements, self.rng)
        with self.assertRaises(InvalidRepresentative):
            verify(self.pk, elements, self.signature)
        longer = Representative(self.otherParams(self.class_length + 1), elements)
        with self.assertRaises(InvalidRepresentative):
            self.sk.sign(longer, self.rng)
        with self.assertRaises(InvalidRepresentative):
            self.pk.verify(longer, self.signature)

    def test_3d_rawSequence(self):
        sig = sign(self.sk, list(self.message), self.rng)
        verify(self.pk, tuple(self.message), sig)
        verify(self.pk, self.message, sig)

    def test_3e_inputsUntouched(self):
        before = self.message.to_bytes()
        scalars = self.sk.scalars()
        self.sk.sign(self.message, self.rng)
        self.assertEqual(self.message.to_bytes(), before)
        self.assertEqual(self.sk.scalars(), scalars)

    def test_3f_seededSigning(self):
        sig1 = sign(self.sk, self.message, random.Random(7))
        sig2 = sign(self.sk, self.message, random.Random(7))
        sig3 = sign(self.sk, self.message, random.Random(8))
        self.assertEqual(sig1, sig2)
        self.assertNotEqual(sig1, sig3)
        self.assertNotEqual(sig1.Y, sig3.Y)
        verify(self.pk, self.message, sig3)

    def test_3g_randomnessFailure(self):
        with self.assertRaises(RandomnessError):
            sign(self.sk, self.message, FailingRandom())
        with self.assertRaises(RandomnessError):
            sign(self.sk, self.message, ZeroRandom())


class TestVerify(SetUpMixin):
    def test_4a_wrongKey(self):
        other = SigningKey.generate(self.params, self.rng).public_key()
        with self.assertRaises(InvalidSignature):
            verify(other, self.message, self.signature)
        self.assertFalse(is_valid(other, self.message, self.signature))

    def test_4b_wrongRepresentative(self):
        other = Representative.random(self.params, self.rng)
        with self.assertRaises(InvalidSignature):
            verify(self.pk, other, self.signature)
        # Same class, but the signature was not adapted
        with self.assertRaises(InvalidSignature):
            verify(self.pk, self.message * 5, self.signature)

    def test_4c_mixedSignatures(self):
        other = self.sk.sign(self.message, self.rng)
        verify(self.pk, self.message, other)
        s = self.signature
        mixed = [
            Signature(self.params, other.Z, s.Y, s.Y_hat),
            Signature(self.params, s.Z, other.Y, s.Y_hat),
            Signature(self.params, s.Z, s.Y, other.Y_hat),
        ]
        for sig in mixed:
            with self.assertRaises(InvalidSignature):
                verify(self.pk, self.message, sig)

    def test_4d_identityComponents(self):
        s = self.signature
        zero1 = self.params.P * 0
        zero2 = self.params.P_hat * 0
        for sig in (
            Signature(self.params, zero1, s.Y, s.Y_hat),
            Signature(self.params, s.Z, zero1, s.Y_hat),
            Signature(self.params, s.Z, s.Y, zero2),
            Signature(self.params, zero1, zero1, zero2),
        ):
            with self.assertRaises(InvalidSignature):
                verify(self.pk, self.message, sig)

    def test_4e_idempotent(self):
        before = (self.message.to_bytes(), self.signature.to_bytes())
        for _ in range(2):
            verify(self.pk, self.message, self.signature)
            self.assertTrue(is_valid(self.pk, self.message, self.signature))
        self.assertEqual(
            (self.message.to_bytes(), self.signature.to_bytes()), before
        )
        other = SigningKey.generate(self.params, self.rng).public_key()
        for _ in range(2):
            self.assertFalse(is_valid(other, self.message, self.signature))

    def test_4f_tamperedBits(self):
        data = self.signature.to_bytes()
        g1 = self.group.g1_size()
        # last byte of Z, of Y, of Y^, and a middle byte of each
        positions = [g1 - 1, 2 * g1 - 1, len(data) - 1, g1 // 2, g1 + g1 // 2]
        for index in positions:
            for bit in (0, 3):
                with self.subTest(index=index, bit=bit):
                    tampered = flip_bit(data, index, bit)
                    try:
                        sig = Signature.from_bytes(self.params, tampered)
                    except DeserializationError:
                        continue
                    with self.assertRaises(InvalidSignature):
                        verify(self.pk, self.message, sig)

    def test_4g_notASignature(self):
        with self.assertRaises(InvalidSignature):
            verify(self.pk, self.message, tuple(self.signature))


class TestChangeRep(SetUpMixin):
    def test_5a_concreteScenario(self):
        new = change_representative(
            self.pk, self.message, self.signature, 3, self.rng
        )
        expected = [m * 3 for m in self.message]
        self.assertEqual(list(new.representative), expected)
        self.assertTrue(new.representative.is_scaling_of(self.message, 3))
        verify(self.pk, new.representative, new.signature)
        # old pair stays valid
        verify(self.pk, self.message, self.signature)

    def test_5b_manyScalars(self):
        for _ in range(5):
            mu = self.group.random_scalar(self.rng)
            psi = self.group.random_scalar(self.rng)
            with self.subTest(mu=mu, psi=psi):
                new_message, new_sig = change_representative_with(
                    self.pk, self.message, self.signature, mu, psi
                )
                self.assertTrue(new_message.is_scaling_of(self.message, mu))
                verify(self.pk, new_message, new_sig)

    def test_5c_adaptedSignature(self):
        mu, psi = 6, 11
        new_message, new_sig = change_representative_with(
            self.pk, self.message, self.signature, mu, psi
        )
        psi_inv = pow(psi, -1, self.group.order)
        self.assertEqual(new_sig.Z, self.signature.Z * (mu * psi))
        self.assertEqual(new_sig.Y, self.signature.Y * psi_inv)
        self.assertEqual(new_sig.Y_hat, self.signature.Y_hat * psi_inv)

    def test_5d_zeroScalars(self):
        for mu in (0, self.group.order, -self.group.order):
            with self.subTest(mu=mu):
                with self.assertRaises(InvalidParameter):
                    change_representative(
                        self.pk, self.message, self.signature, mu, self.rng
                    )
                with self.assertRaises(InvalidParameter):
                    self.message.scale(mu)
        with self.assertRaises(InvalidParameter):
            change_representative_with(
                self.pk, self.message, self.signature, 2, 0
            )

    def test_5e_muOneRerandomizes(self):
        new_message, new_sig = change_representative(
            self.pk, self.message, self.signature, 1, self.rng
        )
        self.assertEqual(new_message, self.message)
        self.assertNotEqual(new_sig, self.signature)
        verify(self.pk, new_message, new_sig)

    def test_5f_inputCheck(self):
        other = Representative.random(self.params, self.rng)
        with self.assertRaises(InvalidSignature):
            change_representative(
                self.pk, other, self.signature, 2, self.rng, verify_input=True
            )
        # trusted input: garbage in, garbage out
        new_message, new_sig = change_representative(
            self.pk, other, self.signature, 2, self.rng, verify_input=False
        )
        self.assertFalse(is_valid(self.pk, new_message, new_sig))
        with self.assertRaises(InvalidRepresentative):
            change_representative(
                self.pk,
                list(self.message)[:-1],
                self.signature,
                2,
                self.rng,
                verify_input=False,
            )

    def test_5g_inputCheckDefault(self):
        other = Representative.random(self.params, self.rng)
        with mock.patch.dict(os.environ, {"SPSEQ_CHGREP_VERIFY": "0"}):
            change_representative(self.pk, other, self.signature, 2, self.rng)
        with mock.patch.dict(os.environ, {"SPSEQ_CHGREP_VERIFY": "yes"}):
            with self.assertRaises(InvalidSignature):
                change_representative(
                    self.pk, other, self.signature, 2, self.rng
                )
        with mock.patch.dict(os.environ, {"SPSEQ_CHGREP_VERIFY": "maybe"}):
            with self.assertRaises(InvalidParameter):
                change_representative(
                    self.pk, other, self.signature, 2, self.rng
                )

    def test_5h_chained(self):
        message, sig = self.message, self.signature
        for _ in range(4):
            message, sig = randomize(self.pk, message, sig, self.rng)
            verify(self.pk, message, sig)
        self.assertNotEqual(message, self.message)
        self.assertNotEqual(sig, self.signature)

    def test_5i_inputsUntouched(self):
        before = (self.message.to_bytes(), self.signature.to_bytes())
        randomize(self.pk, self.message, self.signature, self.rng)
        self.assertEqual(
            (self.message.to_bytes(), self.signature.to_bytes()), before
        )

    def test_5j_randomnessFailure(self):
        with self.assertRaises(RandomnessError):
            change_representative(
                self.pk, self.message, self.signature, 2, FailingRandom()
            )
        with self.assertRaises(RandomnessError):
            randomize(self.pk, self.message, self.signature, ZeroRandom())


class TestSerialization(SetUpMixin):
    def test_6a_bytes(self):
        for cls, obj in (
            (PublicKey, self.pk),
            (Representative, self.message),
            (Signature, self.signature),
        ):
            with self.subTest(cls=cls.__name__):
                data = obj.to_bytes()
                self.assertEqual(cls.from_bytes(self.params, data), obj)
                with self.assertRaises(DeserializationError):
                    cls.from_bytes(self.params, data[:-1])
                with self.assertRaises(DeserializationError):
                    cls.from_bytes(self.params, data + b"\x00")
                with self.assertRaises(DeserializationError):
                    cls.from_bytes(self.params, data.hex())
        size = 2 * self.group.g1_size() + self.group.g2_size()
        self.assertEqual(len(self.signature.to_bytes()), size)
        self.assertEqual(
            len(self.message.to_bytes()), self.class_length * self.group.g1_size()
        )
        self.assertEqual(
            len(self.pk.to_bytes()), self.class_length * self.group.g2_size()
        )

    def test_6b_decodedVerify(self):
        pk = PublicKey.from_bytes(self.params, self.pk.to_bytes())
        message = Representative.from_bytes(self.params, self.message.to_bytes())
        sig = Signature.from_bytes(self.params, self.signature.to_bytes())
        verify(pk, message, sig)

    def test_6c_b64(self):
        for cls, obj in (
            (PublicKey, self.pk),
            (Representative, self.message),
            (Signature, self.signature),
        ):
            with self.subTest(cls=cls.__name__):
                s = obj.to_b64()
                self.assertEqual(cls.from_b64(self.params, s), obj)
                self.assertEqual(cls.from_b64(self.params, s.encode()), obj)

    def test_6d_b64Errors(self):
        other = self.otherParams(self.class_length + 1)
        with self.assertRaises(DeserializationError):
            Representative.from_b64(other, self.message.to_b64())
        with self.assertRaises(DeserializationError):
            Representative.from_b64(self.params, self.signature.to_b64())
        for s in ("not base64!", "aGVsbG8=", "W10=", 42):
            with self.subTest(s=s):
                with self.assertRaises(DeserializationError):
                    Signature.from_b64(self.params, s)

    def test_6e_identityEncodings(self):
        zero1 = (self.params.P * 0).to_bytes()
        zero2 = (self.params.P_hat * 0).to_bytes()
        data = self.message.to_bytes()
        with self.assertRaises(InvalidRepresentative):
            Representative.from_bytes(
                self.params, zero1 + data[self.group.g1_size() :]
            )
        data = self.pk.to_bytes()
        with self.assertRaises(DeserializationError):
            PublicKey.from_bytes(self.params, zero2 + data[self.group.g2_size() :])


class TestIntegration:
    """Fewer, coarser checks for backends where pairings are slow"""

    backend = None

    @classmethod
    def setUpClass(cls):
        cls.group = make_group(cls.backend)
        cls.rng = random.Random(SEED)
        cls.params = SystemParameters.generate(2, cls.group)
        cls.sk = SigningKey.generate(cls.params, cls.rng)
        cls.pk = cls.sk.public_key()
        cls.message = Representative.random(cls.params, cls.rng)
        cls.signature = cls.sk.sign(cls.message, cls.rng)

    @classmethod
    def tearDownClass(cls):
        cls.sk.zeroize()

    def test_7a_validSignature(self):
        verify(self.pk, self.message, self.signature)
        self.assertTrue(is_valid(self.pk, self.message, self.signature))

    def test_7b_changeRepresentative(self):
        new_message, new_sig = change_representative(
            self.pk, self.message, self.signature, 3, self.rng, verify_input=False
        )
        self.assertEqual(list(new_message), [m * 3 for m in self.message])
        verify(self.pk, new_message, new_sig)

    def test_7c_wrongKey(self):
        with SigningKey.generate(self.params, self.rng) as sk:
            other = sk.public_key()
        self.assertFalse(is_valid(other, self.message, self.signature))

    def test_7d_tamperedBits(self):
        data = self.signature.to_bytes()
        g1 = self.group.g1_size()
        for index in (g1 - 1, 2 * g1 - 1, len(data) - 1):
            with self.subTest(index=index):
                tampered = flip_bit(data, index)
                try:
                    sig = Signature.from_bytes(self.params, tampered)
                except DeserializationError:
                    continue
                self.assertFalse(is_valid(self.pk, self.message, sig))

    def test_7e_serialization(self):
        pk = PublicKey.from_b64(self.params, self.pk.to_b64())
        message = Representative.from_bytes(self.params, self.message.to_bytes())
        sig = Signature.from_b64(self.params, self.signature.to_b64())
        self.assertEqual(pk, self.pk)
        self.assertEqual(sig, self.signature)
        verify(pk, message, sig)
        params = SystemParameters.from_b64(self.params.to_b64())
        self.assertEqual(params, self.params)

    def test_7f_malformedPoints(self):
        for data in (b"\xff" * self.group.g1_size(), b"\x01" * 10, b""):
            with self.subTest(data=data[:4]):
                with self.assertRaises(DeserializationError):
                    self.group.g1_from_bytes(data)
        for data in (b"\xff" * self.group.g2_size(), b"\x01" * 10):
            with self.subTest(data=data[:4]):
                with self.assertRaises(DeserializationError):
                    self.group.g2_from_bytes(data)
        zero = (self.params.P * 0).to_bytes()
        data = self.message.to_bytes()
        with self.assertRaises(InvalidRepresentative):
            Representative.from_bytes(self.params, zero + data[len(zero) :])

    def test_7g_bilinearity(self):
        a = self.group.random_scalar(self.rng)
        b = self.group.random_scalar(self.rng)
        P, Q = self.group.g1(), self.group.g2()
        e1 = self.group.pairing(P * a, Q * b)
        e2 = self.group.pairing(P * (a * b), Q)
        self.assertEqual(e1, e2)
        self.assertTrue(
            self.group.pairing_product([(P * a, Q * b), (-(P * (a * b)), Q)]).is_one()
        )
