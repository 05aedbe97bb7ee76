"""dtsbind: generate wasm-bindgen Rust declarations from TypeScript .d.ts classes."""

__version__ = "0.1.0"
