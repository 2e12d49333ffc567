"""CBOR encoding of log fields and decoding of CBOR log streams into JSON."""