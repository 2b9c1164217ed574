# Script to generate keys for the reference decryption oracle.
# Usage example:
# python scripts/generate_oracle_keys.py --env-file .env
import sys
import argparse
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

def generate_keys() -> dict:
    """Generate a cipher key and an oracle signing key, hex/base64 encoded"""
    signing_key = Ed25519PrivateKey.generate()

    private_hex = signing_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption()
    ).hex()

    public_hex = signing_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw
    ).hex()

    return {
        'CIPHER_KEY': Fernet.generate_key().decode(),
        'ORACLE_SIGNING_KEY': private_hex,
        'ORACLE_PUBLIC_KEY': public_hex
    }

def main():
    parser = argparse.ArgumentParser(description='Generate keys for the reference decryption oracle')
    parser.add_argument('--env-file', help='Append the settings to this file instead of printing them')

    args = parser.parse_args()

    try:
        keys = generate_keys()
        lines = [f"{name}={value}" for name, value in keys.items() if name != 'ORACLE_PUBLIC_KEY']

        if args.env_file:
            with open(args.env_file, 'a') as f:
                f.write('\n'.join(lines) + '\n')
            print(f"Wrote oracle keys to {args.env_file}")
        else:
            print('\n'.join(lines))

        print(f"\nOracle public key (hex):\n{keys['ORACLE_PUBLIC_KEY']}\n")
    except OSError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        sys.exit(1)

if __name__ == '__main__':
    main()
