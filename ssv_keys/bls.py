# BLS12-381 helpers: key derivation, public key validation and the polynomial
# arithmetic over the scalar field used to secret-share a validator key.

import py_ecc.optimized_bls12_381 as b
from py_ecc.bls import G2ProofOfPossession as bls_pop
from py_ecc.bls.g2_primitives import G1_to_pubkey, pubkey_to_G1

CURVE_ORDER = b.curve_order
PUBKEY_LENGTH = 48
SECRET_LENGTH = 32


def privkey_to_pubkey(privkey):
    return G1_to_pubkey(b.multiply(b.G1, privkey))


def is_valid_pubkey(pubkey):
    """Compressed G1 point that decodes, is not infinity and is in the subgroup."""
    if not isinstance(pubkey, (bytes, bytearray)) or len(pubkey) != PUBKEY_LENGTH:
        return False
    return bls_pop.KeyValidate(bytes(pubkey))


def eval_poly(x, coefs):
    # Horner's rule, coefs[0] is the constant term
    result = 0
    for c in reversed(coefs):
        result = (result * x + c) % CURVE_ORDER
    return result


def lagrange_coefficient(x, xs):
    # Coefficient of the point at x when interpolating at zero
    num, den = 1, 1
    for j in xs:
        if j == x:
            continue
        num = num * j % CURVE_ORDER
        den = den * (j - x) % CURVE_ORDER
    return num * pow(den, -1, CURVE_ORDER) % CURVE_ORDER


def reconstruct_pubkey(pubkeys):
    """Interpolate the public key at zero from {x: compressed share pubkey}."""
    xs = list(pubkeys)
    acc = b.Z1
    for x in xs:
        point = pubkey_to_G1(pubkeys[x])
        acc = b.add(acc, b.multiply(point, lagrange_coefficient(x, xs)))
    return G1_to_pubkey(acc)
