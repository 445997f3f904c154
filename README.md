# minitls

minitls is a small secure channel in the style of TLS. It runs between one client and one server over TCP. Each side reads its standard input, encrypts it and sends it to the other side, which writes it to its standard output.

## The protocol

Every message is a TLV record: a one-byte type, a length, and a value. The length takes one byte, or for bodies of 253 bytes and more, the marker byte `0xFD` followed by a two-byte big-endian length. Some record types hold nested records: ClientHello, ServerHello, Certificate, Finished and Data. TCP data is split back into whole records before it is handled.

The handshake runs like this:

1. The client sends a **ClientHello**. It holds a 32-byte nonce and an ephemeral P-256 public key.
2. The server sends a **ServerHello**. It holds four things:
   - a nonce,
   - the server's certificate,
   - an ephemeral public key,
   - a handshake signature made with the server's long-term key. The signature covers the ClientHello, the nonce, the certificate and the public key.
3. The client checks the ServerHello in three steps:
   - It verifies the certificate signature against the CA public key.
   - It compares the certificate's DNS name with the hostname it was given.
   - It verifies the handshake signature against the public key in the certificate.
4. Both sides compute an ECDH shared secret. HKDF-SHA256 turns it into an encryption key and a MAC key. The salt is the transcript, ClientHello followed by ServerHello. The info strings are `enc` and `mac`.
5. The client sends **Finished**, which holds an HMAC-SHA256 over the transcript. The server checks it.
6. After that, each data message holds an IV, an AES-256-CBC ciphertext and an HMAC-SHA256 tag. The tag is computed over the encoded IV and ciphertext records. Standard input is read in chunks of at most 943 bytes per message.

## Installation

```
pip install .
```

## Files it expects

Both programs read these files from the current directory:

| Side   | File                | Contents                                   |
|--------|---------------------|--------------------------------------------|
| server | `server_key.bin`    | server's long-term private key (DER)       |
| server | `server_cert.bin`   | certificate written by `minitls-gen-cert`  |
| client | `ca_public_key.bin` | CA public key (DER, SubjectPublicKeyInfo)  |

## Making a certificate

```
minitls-gen-cert <server_key.bin> <ca_private_key.bin> <dns-name> <server_cert.bin>
```

- The first file is the server's private key. Its public half is what the certificate carries.
- The second file is the CA's private key. The certificate is signed with it.
- The DNS name is stored with a trailing NUL byte.
- The certificate is written to the fourth path.

## Running

Start the server first. It accepts a single client:

```
minitls-server <port>
```

Then connect a client to it:

```
minitls-client <hostname> <port>
```

What you type on one side appears on the other. The session ends when the peer closes the connection. If you give either command any extra argument, that side sends deliberately corrupted MACs. This is only for testing.

A trace of each message is logged to standard error.

## Exit codes

| Code | Meaning                                                               |
|------|-----------------------------------------------------------------------|
| 0    | the peer closed the connection                                        |
| 1    | usage error, certificate signature invalid, or a socket error         |
| 2    | the DNS name in the certificate does not match the hostname           |
| 3    | ServerHello handshake signature invalid                               |
| 4    | Finished transcript HMAC mismatch                                     |
| 5    | data message MAC verification or decryption failed                    |
| 6    | unexpected or malformed message, or a missing or invalid public key   |
| 255  | invalid hostname, or an unreadable key or certificate file            |

`minitls-gen-cert` returns 1 when it is given too few arguments, and 255 when a key file cannot be read.

## Library use

- `minitls.tlv` handles records.
  - `Tlv` has `add_child`, `serialize`, `find` and a `length` property.
  - `deserialize_tlv` decodes a record.
  - `describe_tlv_bytes` and `hex_line` produce debug output.
  - `TlvType` lists the record types, and `TlvError` is raised for malformed records.
- `minitls.crypto` holds the primitives:
  - keys: `generate_private_key`, `load_private_key`, `load_public_key`, `load_peer_public_key`, `load_certificate`, `public_key_der`
  - key exchange: `derive_secret`, `derive_keys`
  - signatures: `sign`, `verify`
  - encryption and MACs: `encrypt_data`, `decrypt_cipher`, `hmac_digest`, `generate_nonce`
  - errors: `KeyLoadError`
- `minitls.stdio.StdioChannel` reads without blocking and writes to a pair of streams.
- `minitls.security.SecurityLayer` is the handshake state machine. `input` returns the next record to send, and `output` handles a received record. It uses `State`, and a failure raises `HandshakeError`, which carries an `exit_code`.
- `minitls.net` provides `resolve_hostname` and `send_all`.
- `minitls.client.run_client`, `minitls.server.run_server` and `minitls.gen_cert.build_certificate` are what the commands are built on.

## What it does not do

The package has no command that creates key files. `minitls-gen-cert` only reads existing DER private keys. You can make such keys with the `cryptography` library, for example:

```python
from pathlib import Path
from cryptography.hazmat.primitives import serialization
from minitls.crypto import generate_private_key, public_key_der

key = generate_private_key()
Path("ca_private_key.bin").write_bytes(
    key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
)
Path("ca_public_key.bin").write_bytes(public_key_der(key))
```

The server handles only one client and then exits. Closing standard input does not end the session.